"""Data models for certificate setup."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class CredentialStatus(Enum):
    """Outcome of checking a credential and, if needed, repairing it."""

    REUSED = "reused"
    REGENERATED = "regenerated"
    FAILED = "failed"


@dataclass(frozen=True)
class CredentialPair:
    """Certificate and private key paths that are valid or invalid together."""

    cert_path: Path
    key_path: Path

    def with_suffix(self, suffix: str) -> "CredentialPair":
        """Return the pair with '.<suffix>' appended to both filenames."""
        return CredentialPair(
            cert_path=self.cert_path.with_name(f"{self.cert_path.name}.{suffix}"),
            key_path=self.key_path.with_name(f"{self.key_path.name}.{suffix}"),
        )

    def paths(self) -> list[Path]:
        return [self.cert_path, self.key_path]


@dataclass
class CAState:
    """Shared CA material and whether any CA was (re)generated during this run."""

    ca: CredentialPair
    proxy_ca: CredentialPair
    regenerated: bool = False

    def paths(self) -> list[Path]:
        """Return CA cert/key paths in transfer order."""
        return self.ca.paths() + self.proxy_ca.paths()


@dataclass
class ProfileCertsResult:
    """Result from profile certificate provisioning.

    transfer holds canonical cert/key paths to copy to the node;
    regenerated holds the subjects that were (re)issued.
    """

    transfer: list[Path] = field(default_factory=list)
    regenerated: list[str] = field(default_factory=list)


@dataclass
class SetupResult:
    """Summary of a full certificate setup run for one node."""

    ca_regenerated: bool
    regenerated_certs: list[str]
    copied: list[str]
    kubeadm_renewed: bool
