"""Renewal of the certificates kubeadm keeps on the node."""

from pathlib import PurePosixPath

from .command_runner import CommandRunner
from .config import (
    GUEST_KUBERNETES_CERTS_DIR,
    GUEST_PERSISTENT_DIR,
    KUBEADM_YAML_PATH,
    ClusterConfig,
)
from .errors import RemoteCommandError
from .logging_config import LOGGER
from .models import CredentialStatus
from .validity import is_kubeadm_cert_valid

KUBEADM_CERTS = (
    "apiserver-etcd-client",
    "apiserver-kubelet-client",
    "etcd-server",
    "etcd-healthcheck-client",
    "etcd-peer",
    "front-proxy-client",
)

ETCD_PREFIX = "etcd-"


def kubeadm_cert_path(name: str) -> PurePosixPath:
    """Return the node path of a kubeadm certificate (etcd-server -> etcd/server.crt)."""
    if name.startswith(ETCD_PREFIX):
        return GUEST_KUBERNETES_CERTS_DIR / "etcd" / f"{name.removeprefix(ETCD_PREFIX)}.crt"
    return GUEST_KUBERNETES_CERTS_DIR / f"{name}.crt"


def kubeadm_cert_paths() -> list[PurePosixPath]:
    return [kubeadm_cert_path(name) for name in KUBEADM_CERTS]


def check_kubeadm_certs(runner: CommandRunner) -> dict[PurePosixPath, CredentialStatus]:
    """Report each kubeadm certificate as REUSED (usable) or FAILED (needs renewal)."""
    return {
        path: CredentialStatus.REUSED if is_kubeadm_cert_valid(runner, path) else CredentialStatus.FAILED
        for path in kubeadm_cert_paths()
    }


def renew_command(cluster_config: ClusterConfig) -> list[str]:
    """Return the command that renews every kubeadm certificate with the cluster's kubeadm."""
    version = cluster_config.kubernetes_config.kubernetes_version
    kubeadm_path = GUEST_PERSISTENT_DIR / "binaries" / version
    script = (
        f'sudo env PATH="{kubeadm_path}:$PATH" kubeadm certs renew all '
        f"--config {KUBEADM_YAML_PATH}"
    )
    return ["/bin/bash", "-c", script]


def generate_kubeadm_certs(runner: CommandRunner, cluster_config: ClusterConfig) -> bool:
    """Renew all kubeadm certificates if any of them is invalid.

    Returns:
        True if a renewal was run, False when every certificate was usable

    Raises:
        RemoteCommandError: If the renewal command fails
    """
    report = check_kubeadm_certs(runner)
    if all(status is CredentialStatus.REUSED for status in report.values()):
        return False

    expired = [str(path) for path, status in report.items() if status is CredentialStatus.FAILED]
    LOGGER.warning("kubeadm certificates have expired. Generating new ones...")
    LOGGER.info("invalid kubeadm certificates: %s", expired)
    try:
        runner.run_cmd(renew_command(cluster_config))
    except RemoteCommandError as e:
        raise e.wrap("failed to renew kubeadm certs") from e
    return True
