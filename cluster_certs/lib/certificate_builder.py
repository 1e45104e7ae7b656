"""Certificate builder for X.509 certificate construction."""

import ipaddress
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from .cert_utils import generate_serial_number
from .config import DistinguishedName

# Backdate NotBefore so hosts with a skewed clock still accept fresh certificates
CLOCK_SKEW = timedelta(hours=24)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

# Cluster certificates serve and authenticate with the same key pair
SERVER_AND_CLIENT_AUTH = x509.ExtendedKeyUsage(
    [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
)


def _key_usage(cert_sign: bool) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=True,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=cert_sign,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )


def _subject_alt_names(ips: Sequence[IPAddress], dns_names: Sequence[str]) -> list[x509.GeneralName]:
    names: list[x509.GeneralName] = [x509.IPAddress(ip) for ip in ips]
    names.extend(x509.DNSName(name) for name in dns_names)
    return names


class CertificateBuilder:
    """Builds X.509 certificates for the cluster CA hierarchy and its leaf certificates.

    Every certificate is backdated by CLOCK_SKEW and carries server and client
    auth usage; CAs additionally get cert signing and a subject key identifier.
    """

    @staticmethod
    def _start(
        subject: x509.Name,
        issuer: x509.Name,
        public_key: RSAPublicKey,
        lifetime: timedelta,
        is_ca: bool,
    ) -> x509.CertificateBuilder:
        now = datetime.now(timezone.utc)
        return (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(now - CLOCK_SKEW)
            .not_valid_after(now + lifetime)
            .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
            .add_extension(_key_usage(cert_sign=is_ca), critical=True)
            .add_extension(SERVER_AND_CLIENT_AUTH, critical=False)
        )

    @staticmethod
    def build_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        validity_years: int,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject
            private_key: RSA private key for signing
            validity_years: Certificate validity period in years

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        public_key = private_key.public_key()
        builder = CertificateBuilder._start(
            subject,
            subject,
            public_key,
            timedelta(days=validity_years * 365),
            is_ca=True,
        ).add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_signed_cert(
        subject_dn: DistinguishedName,
        public_key: RSAPublicKey,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        expiration: timedelta,
        ips: Sequence[IPAddress] = (),
        dns_names: Sequence[str] = (),
    ) -> x509.Certificate:
        """Build a leaf certificate signed by a CA.

        SANs are only added when IPs or DNS names are given.

        Args:
            subject_dn: Distinguished name for certificate subject
            public_key: Public key of the leaf key pair
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            expiration: Time from now until NotAfter
            ips: IP address SANs
            dns_names: DNS name SANs

        Returns:
            X.509 end-entity certificate signed by the CA
        """
        builder = CertificateBuilder._start(
            subject_dn.to_x509_name(),
            issuer_cert.subject,
            public_key,
            expiration,
            is_ca=False,
        )

        general_names = _subject_alt_names(ips, dns_names)
        if general_names:
            builder = builder.add_extension(x509.SubjectAlternativeName(general_names), critical=False)

        return builder.sign(issuer_key, hashes.SHA256())
