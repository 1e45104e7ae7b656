"""CA store holding the CA pairs shared by every cluster profile."""

from pathlib import Path

from .ca_utils import generate_ca_cert
from .config import CertsConfig, LocalPaths
from .errors import GenerationError
from .lock import PathLock
from .logging_config import LOGGER
from .models import CAState, CredentialPair, CredentialStatus
from .validity import ensure_valid


class CAStore:
    """Shared CA directory: the primary CA, the proxy-client CA and their lock.

    Several processes may start at once against the same directory, so CA
    files are only read or written while the store lock is held.
    """

    def __init__(
        self,
        paths: LocalPaths,
        config: CertsConfig,
        lock_timeout: float | None = None,
    ) -> None:
        """Initialize CA store.

        Args:
            paths: Host-side layout containing the shared CA directory
            config: Subjects and key parameters for CA generation
            lock_timeout: Seconds to wait for the store lock (default: config.lock_timeout)
        """
        self.paths = paths
        self.config = config
        self.lock_timeout = config.lock_timeout if lock_timeout is None else lock_timeout
        self.ca = CredentialPair(cert_path=paths.ca_cert, key_path=paths.ca_key)
        self.proxy_ca = CredentialPair(cert_path=paths.proxy_ca_cert, key_path=paths.proxy_ca_key)

    @property
    def lock_path(self) -> Path:
        return self.paths.lock_path

    def lock(self) -> PathLock:
        """Return an unacquired lock guarding this store."""
        return PathLock(self.lock_path, timeout=self.lock_timeout)

    def ensure_ca_certs(self) -> CAState:
        """Generate the CA pairs that are missing or invalid, under the store lock.

        Returns:
            CAState whose regenerated flag is set if either CA was (re)created

        Raises:
            LockTimeoutError: If the store lock is not acquired in time
            GenerationError: If generating a CA fails
        """
        LOGGER.info("acquiring lock: %s (timeout %ss)", self.lock_path, self.lock_timeout)
        with self.lock():
            return self._ensure_ca_certs_locked()

    def _ensure_ca_certs_locked(self) -> CAState:
        state = CAState(ca=self.ca, proxy_ca=self.proxy_ca)
        ca_specs = [
            (self.ca, self.config.ca_subject),
            (self.proxy_ca, self.config.proxy_ca_subject),
        ]

        for pair, subject in ca_specs:

            def generate(target: CredentialPair, subject: str = subject) -> None:
                LOGGER.info("generating %s CA: %s", subject, target.key_path)
                try:
                    generate_ca_cert(target.cert_path, target.key_path, subject, self.config)
                except (OSError, ValueError) as e:
                    raise GenerationError(f"generate ca cert {subject}: {e}") from e

            status = ensure_valid(pair, generate)
            if status is CredentialStatus.REUSED:
                LOGGER.info("skipping %s CA generation: %s", subject, pair.key_path)
            else:
                state.regenerated = True

        return state
