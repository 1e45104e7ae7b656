"""Cluster, node and certificate configuration dataclasses."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from cryptography import x509
from cryptography.x509 import oid

# Guest-side layout
GUEST_PERSISTENT_DIR = PurePosixPath("/var/lib/minikube")
GUEST_KUBERNETES_CERTS_DIR = GUEST_PERSISTENT_DIR / "certs"
GUEST_CERT_AUTH_DIR = PurePosixPath("/usr/share/ca-certificates")
GUEST_CERT_STORE_DIR = PurePosixPath("/etc/ssl/certs")
KUBEADM_YAML_PATH = PurePosixPath("/var/tmp/minikube/kubeadm.yaml")

CONTROL_PLANE_ALIAS = "control-plane.minikube.internal"
DEFAULT_BIND_IPV4 = "127.0.0.1"
DOCKER_HOST_ENV = "DOCKER_HOST"
DOCKER_RUNTIME = "docker"

MINIKUBE_HOME_ENV = "MINIKUBE_HOME"


@dataclass
class CertsConfig:
    """Subjects, key size and timing used when generating certificates."""

    ca_subject: str = "minikubeCA"
    proxy_ca_subject: str = "proxyClientCA"
    client_subject: str = "minikube-user"
    apiserver_subject: str = "minikube"
    proxy_client_subject: str = "aggregator"
    organization: str = "system:masters"
    key_size: int = 2048
    ca_validity_years: int = 10
    lock_timeout: float = 60.0


@dataclass
class KubernetesConfig:
    """Kubernetes settings that feed the API server certificate SANs."""

    cluster_name: str = "minikube"
    kubernetes_version: str = "v1.31.0"
    service_cidr: str = "10.96.0.0/12"
    dns_domain: str = "cluster.local"
    apiserver_name: str = "minikubeCA"
    apiserver_ips: list[str] = field(default_factory=list)
    apiserver_names: list[str] = field(default_factory=list)
    container_runtime: str = "containerd"


@dataclass
class ClusterConfig:
    """Cluster-wide settings."""

    kubernetes_config: KubernetesConfig = field(default_factory=KubernetesConfig)
    cert_expiration: timedelta = timedelta(hours=26280)


@dataclass
class Node:
    """A cluster node receiving certificate material."""

    name: str
    ip: str
    port: int = 8443
    control_plane: bool = True


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name."""

    common_name: str
    organization: str | None = None

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        attributes = []
        if self.organization:
            attributes.append(x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization))
        attributes.append(x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name))
        return x509.Name(attributes)


@dataclass
class LocalPaths:
    """Host-side layout of the shared CA directory and per-cluster profiles."""

    mini_path: Path

    @classmethod
    def from_env(cls) -> "LocalPaths":
        """Resolve the base directory from MINIKUBE_HOME, defaulting to the user's home."""
        home = os.environ.get(MINIKUBE_HOME_ENV)
        base = Path(home) if home else Path.home()
        if base.name != ".minikube":
            base = base / ".minikube"
        return cls(mini_path=base)

    def profile(self, cluster_name: str) -> Path:
        return self.mini_path / "profiles" / cluster_name

    def client_cert(self, cluster_name: str) -> Path:
        return self.profile(cluster_name) / "client.crt"

    def client_key(self, cluster_name: str) -> Path:
        return self.profile(cluster_name) / "client.key"

    @property
    def ca_cert(self) -> Path:
        return self.mini_path / "ca.crt"

    @property
    def ca_key(self) -> Path:
        return self.mini_path / "ca.key"

    @property
    def proxy_ca_cert(self) -> Path:
        return self.mini_path / "proxy-client-ca.crt"

    @property
    def proxy_ca_key(self) -> Path:
        return self.mini_path / "proxy-client-ca.key"

    @property
    def lock_path(self) -> Path:
        return self.mini_path / "ca-certs.lock"

    @property
    def cert_dirs(self) -> list[Path]:
        """Directories scanned for extra CA certificates to trust in the guest."""
        return [
            self.mini_path / "certs",
            self.mini_path / "files" / "etc" / "ssl" / "certs",
        ]


def daemon_host(container_runtime: str) -> str:
    """Return the host the container daemon listens on.

    Only the docker runtime can point at a remote daemon, through a
    tcp:// DOCKER_HOST. Everything else is reached on the default bind address.
    """
    if container_runtime != DOCKER_RUNTIME:
        return DEFAULT_BIND_IPV4
    docker_host = os.environ.get(DOCKER_HOST_ENV, "")
    if docker_host:
        parsed = urlparse(docker_host)
        if parsed.netloc and parsed.hostname:
            return parsed.hostname
    return DEFAULT_BIND_IPV4
