"""Certificate utility functions for key generation, serialization and PEM inspection."""

import base64
import binascii
import re
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n(.*?)-----END \1-----",
    re.DOTALL,
)


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes.

    Raises:
        ValueError: If the data holds no PEM block or the block is not a valid X.509 certificate
    """
    return x509.load_pem_x509_certificate(pem_data)


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4 (128-bit random value)."""
    return uuid.uuid4().int


def iter_pem_blocks(data: bytes) -> Iterator[tuple[str, bytes]]:
    """Yield (block_type, der_bytes) for every well-formed PEM block in data.

    Blocks whose body is not valid base64 are skipped.
    """
    for match in _PEM_BLOCK.finditer(data):
        body = b"".join(
            line.strip() for line in match.group(2).splitlines() if b":" not in line
        )
        try:
            der = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            continue
        yield match.group(1).decode("ascii"), der


def has_pem_certificate(data: bytes) -> bool:
    """Return True if data contains at least one PEM block of type CERTIFICATE."""
    return any(block_type == "CERTIFICATE" for block_type, _ in iter_pem_blocks(data))


def is_expired(cert: x509.Certificate, now: datetime | None = None) -> bool:
    """Return True once the certificate's NotAfter is no longer strictly in the future."""
    now = now or datetime.now(UTC)
    return cert.not_valid_after_utc <= now
