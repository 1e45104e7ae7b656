"""Validity checks for cached credentials, local and on the target."""

import os
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

from .cert_utils import deserialize_certificate, is_expired
from .command_runner import CommandRunner
from .errors import RemoteCommandError
from .logging_config import LOGGER
from .models import CredentialPair, CredentialStatus


def can_read(path: Path) -> bool:
    """Return True if path exists and can be opened for reading."""
    try:
        with open(path, "rb"):
            return True
    except OSError:
        return False


def _remove_pair(cert_path: Path, key_path: Path) -> None:
    for path in (cert_path, key_path):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            LOGGER.warning("failed to remove %s: %s", path, e)


def is_valid(cert_path: Path, key_path: Path) -> bool:
    """Check a cert/key pair and make sure it's still usable.

    The pair is valid when the key is readable and the certificate decodes as
    PEM, parses as X.509 and has not expired. Any other state deletes both
    files so the caller regenerates them.
    """
    if not can_read(key_path):
        _remove_pair(cert_path, key_path)
        return False

    try:
        cert_pem = cert_path.read_bytes()
    except OSError as e:
        LOGGER.info("failed to read cert file %s: %s", cert_path, e)
        _remove_pair(cert_path, key_path)
        return False

    try:
        cert = deserialize_certificate(cert_pem)
    except ValueError as e:
        LOGGER.info("failed to parse cert file %s: %s", cert_path, e)
        _remove_pair(cert_path, key_path)
        return False

    now = datetime.now(UTC)
    if is_expired(cert, now):
        LOGGER.warning("Certificate %s has expired. Generating a new one...", cert_path.name)
        LOGGER.info(
            "cert expired %s: expiration: %s, now: %s",
            cert_path,
            cert.not_valid_after_utc.isoformat(),
            now.isoformat(),
        )
        _remove_pair(cert_path, key_path)
        return False

    return True


def is_kubeadm_cert_valid(runner: CommandRunner, cert_path: PurePosixPath) -> bool:
    """Check a certificate that lives on the target.

    A failed read is reported as valid: the certificate most likely has not
    been provisioned yet, so there is nothing to refresh.
    """
    try:
        result = runner.run_cmd(["cat", str(cert_path)])
    except RemoteCommandError as e:
        LOGGER.info("failed to read cert file %s: %s", cert_path, e)
        return True

    try:
        cert = deserialize_certificate(result.stdout)
    except ValueError as e:
        LOGGER.info("failed to parse cert file %s: %s", cert_path, e)
        return False

    if is_expired(cert):
        LOGGER.info(
            "cert expired %s: expiration: %s",
            cert_path,
            cert.not_valid_after_utc.isoformat(),
        )
        return False

    return True


def ensure_valid(
    pair: CredentialPair,
    generate: Callable[[CredentialPair], None],
    force: bool = False,
) -> CredentialStatus:
    """Reuse pair if it is valid, otherwise delete whatever is left and regenerate it.

    Args:
        pair: Certificate and key paths to check
        generate: Writes a fresh pair to the given paths
        force: Regenerate even if the existing pair is valid

    Returns:
        REUSED or REGENERATED

    Raises:
        Whatever generate raises; the pair is then left absent or partial
    """
    if not force and is_valid(pair.cert_path, pair.key_path):
        return CredentialStatus.REUSED

    _remove_pair(pair.cert_path, pair.key_path)
    generate(pair)
    return CredentialStatus.REGENERATED
