"""Reusable functions that generate CA and signed certificate files on disk."""

import ipaddress
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

from .cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from .certificate_builder import CertificateBuilder
from .config import CertsConfig, DistinguishedName


def _write_pair(cert_path: Path, key_path: Path, cert_pem: bytes, key_pem: bytes) -> None:
    """Write a certificate (0644) and its key (0600), creating parent directories."""
    for path in (cert_path, key_path):
        path.parent.mkdir(parents=True, exist_ok=True)
    key_path.write_bytes(key_pem)
    key_path.chmod(0o600)
    cert_path.write_bytes(cert_pem)
    cert_path.chmod(0o644)


def generate_ca_cert(
    cert_path: Path,
    key_path: Path,
    subject: str,
    config: CertsConfig,
) -> None:
    """Generate a self-signed CA key pair for subject and write it to cert_path/key_path."""
    key = generate_private_key(config.key_size)
    cert = CertificateBuilder.build_ca(
        subject_dn=DistinguishedName(common_name=subject),
        private_key=key,
        validity_years=config.ca_validity_years,
    )
    _write_pair(cert_path, key_path, serialize_certificate(cert), serialize_private_key(key))


def generate_signed_cert(
    cert_path: Path,
    key_path: Path,
    subject: str,
    ips: Sequence[str],
    alternate_names: Sequence[str],
    ca_cert_path: Path,
    ca_key_path: Path,
    expiration: timedelta,
    config: CertsConfig,
) -> None:
    """Generate a key pair for subject, sign it with the CA and write it to cert_path/key_path.

    Args:
        cert_path: Output certificate path
        key_path: Output private key path
        subject: Common name of the certificate
        ips: IP address SANs as strings
        alternate_names: DNS name SANs
        ca_cert_path: Issuing CA certificate
        ca_key_path: Issuing CA private key
        expiration: Validity period from now
        config: Key size and organization

    Raises:
        OSError: If the CA files cannot be read or the output cannot be written
        ValueError: If the CA material is not valid PEM or an IP is malformed
    """
    ca_cert = deserialize_certificate(ca_cert_path.read_bytes())
    ca_key = deserialize_private_key(ca_key_path.read_bytes())

    key = generate_private_key(config.key_size)
    cert = CertificateBuilder.build_signed_cert(
        subject_dn=DistinguishedName(common_name=subject, organization=config.organization),
        public_key=key.public_key(),
        issuer_cert=ca_cert,
        issuer_key=ca_key,
        expiration=expiration,
        ips=[ipaddress.ip_address(ip) for ip in ips],
        dns_names=list(alternate_names),
    )
    _write_pair(cert_path, key_path, serialize_certificate(cert), serialize_private_key(key))
