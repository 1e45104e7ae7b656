"""Kubeconfig that in-node tooling uses to reach the local API server."""

from dataclasses import dataclass
from pathlib import PurePosixPath

import yaml

from .config import GUEST_KUBERNETES_CERTS_DIR, Node


@dataclass
class KubeconfigSettings:
    """Cluster, user and context names plus the credential paths they reference."""

    cluster_name: str
    server_address: str
    client_certificate: PurePosixPath
    client_key: PurePosixPath
    certificate_authority: PurePosixPath

    @classmethod
    def for_node(cls, node: Node) -> "KubeconfigSettings":
        return cls(
            cluster_name=node.name,
            server_address=f"https://localhost:{node.port}",
            client_certificate=GUEST_KUBERNETES_CERTS_DIR / "apiserver.crt",
            client_key=GUEST_KUBERNETES_CERTS_DIR / "apiserver.key",
            certificate_authority=GUEST_KUBERNETES_CERTS_DIR / "ca.crt",
        )


def build_kubeconfig(settings: KubeconfigSettings) -> dict:
    """Return a kubeconfig document with one cluster, one user and a current context."""
    name = settings.cluster_name
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "preferences": {},
        "clusters": [
            {
                "name": name,
                "cluster": {
                    "server": settings.server_address,
                    "certificate-authority": str(settings.certificate_authority),
                },
            }
        ],
        "users": [
            {
                "name": name,
                "user": {
                    "client-certificate": str(settings.client_certificate),
                    "client-key": str(settings.client_key),
                },
            }
        ],
        "contexts": [
            {
                "name": name,
                "context": {"cluster": name, "user": name},
            }
        ],
        "current-context": name,
    }


def encode_kubeconfig(settings: KubeconfigSettings) -> bytes:
    """Serialize the kubeconfig for settings as YAML."""
    return yaml.safe_dump(build_kubeconfig(settings), sort_keys=False).encode("utf-8")
