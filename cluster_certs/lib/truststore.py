"""Extra CA certificates mirrored into the node's system trust store.

Collection only reads the host filesystem; installation only issues commands
through a CommandRunner. The two halves share nothing but the mapping of
host source path to guest destination path.
"""

import os
import shlex
from pathlib import Path, PurePosixPath

from .cert_utils import has_pem_certificate
from .command_runner import CommandRunner
from .config import GUEST_CERT_AUTH_DIR, GUEST_CERT_STORE_DIR, LocalPaths
from .errors import RemoteCommandError, TraversalError
from .logging_config import LOGGER

CERT_EXTENSIONS = {".crt", ".pem"}

# Smaller files cannot hold a certificate
MIN_CERT_SIZE = 32

# Client credentials of the legacy machine store live next to the CA certs
EXCLUDED_CERT_NAMES = ("ca.pem", "cert.pem")

PRIMARY_CA_TRUST_NAME = "minikubeCA.pem"


def is_valid_pem_certificate(path: Path) -> bool:
    """Return True if the file holds at least one PEM CERTIFICATE block.

    Raises:
        OSError: If the file cannot be read
    """
    return has_pem_certificate(path.read_bytes())


def _raise_walk_error(error: OSError) -> None:
    if isinstance(error, FileNotFoundError):
        return
    raise error


def _collect_dir(certs_dir: Path) -> dict[Path, PurePosixPath]:
    found: dict[Path, PurePosixPath] = {}
    for root, dirnames, filenames in os.walk(certs_dir, onerror=_raise_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            host_path = Path(root) / filename
            ext = host_path.suffix.lower()
            if ext not in CERT_EXTENSIONS or not host_path.is_file():
                continue

            size = host_path.stat().st_size
            if size < MIN_CERT_SIZE:
                LOGGER.warning("ignoring %s, impossibly tiny %d bytes", host_path, size)
                continue

            LOGGER.info("found cert: %s (%d bytes)", host_path, size)
            if is_valid_pem_certificate(host_path):
                found[host_path] = GUEST_CERT_AUTH_DIR / f"{host_path.stem}.pem"

    for excluded in EXCLUDED_CERT_NAMES:
        found.pop(certs_dir / excluded, None)
    return found


def collect_ca_certs(paths: LocalPaths) -> dict[Path, PurePosixPath]:
    """Find PEM certificates to trust in the guest.

    Looks for .crt/.pem files under the host cert directories and adds the
    primary CA certificate. ca.pem and cert.pem directly inside a scanned
    directory are never included.

    Returns:
        Mapping of host source path to guest destination path

    Raises:
        TraversalError: If walking a directory fails for a reason other than absence
    """
    cert_files: dict[Path, PurePosixPath] = {}
    for certs_dir in paths.cert_dirs:
        try:
            cert_files.update(_collect_dir(certs_dir))
        except OSError as e:
            raise TraversalError(f"provisioning: traversal certificates dir {certs_dir}: {e}") from e

    cert_files[paths.ca_cert] = GUEST_CERT_AUTH_DIR / PRIMARY_CA_TRUST_NAME
    return cert_files


def _sudo_bash(script: str) -> list[str]:
    return ["sudo", "/bin/bash", "-c", script]


def has_openssl(runner: CommandRunner) -> bool:
    """Return True if the openssl binary runs on the target."""
    try:
        runner.run_cmd(["openssl", "version"])
    except RemoteCommandError:
        return False
    return True


def get_subject_hash(runner: CommandRunner, cert_path: PurePosixPath) -> str:
    """Calculate the OpenSSL subject hash of a certificate on the target.

    Raises:
        RemoteCommandError: If the file cannot be listed or hashed; the
            message carries the listing and the file contents
    """
    listing = runner.run_cmd(["ls", "-la", str(cert_path)])
    LOGGER.info("hashing: %s", listing.stdout.decode(errors="replace").strip())

    try:
        result = runner.run_cmd(["openssl", "x509", "-hash", "-noout", "-in", str(cert_path)])
    except RemoteCommandError as e:
        try:
            contents = runner.run_cmd(["cat", str(cert_path)]).stdout.decode(errors="replace")
        except RemoteCommandError as cat_error:
            contents = f"<unreadable: {cat_error}>"
        raise RemoteCommandError(
            f"cert:\n{listing.output()}\n---\n{contents}",
            args_list=e.args_list,
            exit_code=e.exit_code,
            stdout=e.stdout,
            stderr=e.stderr,
        ) from e

    return result.stdout.decode().strip()


def install_cert_symlinks(runner: CommandRunner, ca_certs: dict[Path, PurePosixPath]) -> None:
    """Link copied CA certificates into the system certificate store.

    Each certificate gets a link named after itself and, when openssl is
    available, a '<subject hash>.0' link in the layout c_rehash produces.
    Existing hash links are left alone even if they dangle.

    Raises:
        RemoteCommandError: If creating a link or hashing a certificate fails
    """
    hash_links = has_openssl(runner)
    if not hash_links and ca_certs:
        LOGGER.warning("OpenSSL not found. Please recreate the cluster with the latest image.")

    for source, ca_cert_file in ca_certs.items():
        cert_store_path = GUEST_CERT_STORE_DIR / ca_cert_file.name
        target = shlex.quote(str(ca_cert_file))
        link = shlex.quote(str(cert_store_path))

        try:
            runner.run_cmd(_sudo_bash(f"test -s {target} && ln -fs {target} {link}"))
        except RemoteCommandError as e:
            raise e.wrap(f"create symlink for {ca_cert_file} (from {source})") from e

        if not hash_links:
            continue

        try:
            subject_hash = get_subject_hash(runner, ca_cert_file)
        except RemoteCommandError as e:
            raise e.wrap(f"calculate hash for cacert {ca_cert_file} (from {source})") from e

        # NOTE: the hash link may exist but point to a missing file
        hash_link = shlex.quote(str(GUEST_CERT_STORE_DIR / f"{subject_hash}.0"))
        try:
            runner.run_cmd(_sudo_bash(f"test -L {hash_link} || ln -fs {link} {hash_link}"))
        except RemoteCommandError as e:
            raise e.wrap(f"create symlink for {ca_cert_file} (from {source})") from e
