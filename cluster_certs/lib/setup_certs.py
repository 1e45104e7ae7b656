"""Certificate setup for one cluster node, from shared CAs to the node trust store."""

from pathlib import Path

from .ca_manager import CAStore
from .command_runner import CommandRunner, CopyableFile, FileAsset, MemoryAsset
from .config import (
    GUEST_KUBERNETES_CERTS_DIR,
    GUEST_PERSISTENT_DIR,
    CertsConfig,
    ClusterConfig,
    LocalPaths,
    Node,
)
from .errors import CertSetupError, CopyError
from .kubeadm import generate_kubeadm_certs
from .kubeconfig import KubeconfigSettings, encode_kubeconfig
from .logging_config import LOGGER
from .models import SetupResult
from .profile_certs import generate_profile_certs
from .truststore import collect_ca_certs, install_cert_symlinks


def _cert_permissions(path: Path) -> str:
    return "0600" if path.name.endswith(".key") else "0644"


def transfer_manifest(profile_paths: list[Path], ca_paths: list[Path]) -> list[Path]:
    """Return every local cert/key path to copy to the node, leaf certs first."""
    return list(profile_paths) + list(ca_paths)


def _close_all(assets: list[CopyableFile]) -> None:
    for asset in assets:
        try:
            asset.close()
        except OSError as e:
            LOGGER.warning("error closing the file %s: %s", asset.source_path, e)


def setup_certs(
    runner: CommandRunner,
    cluster_config: ClusterConfig,
    node: Node,
    paths: LocalPaths,
    certs_config: CertsConfig | None = None,
    ca_store: CAStore | None = None,
) -> SetupResult:
    """Generate and install the credentials node needs to talk to the API server.

    Steps: shared CAs (under the store lock), profile certificates, copy of
    certificates, CA trust entries and (control plane only) the in-node
    kubeconfig, trust store symlinks, kubeadm certificate renewal.

    Args:
        runner: Command execution and file transfer for the node
        cluster_config: Cluster settings
        node: Node being set up
        paths: Host-side layout
        certs_config: Certificate parameters (default: CertsConfig())
        ca_store: Shared CA store (default: CAStore over paths)

    Returns:
        SetupResult describing what was regenerated, copied and renewed

    Raises:
        CertSetupError: If any step fails; the cause is the step's own error
    """
    certs_config = certs_config or CertsConfig()
    ca_store = ca_store or CAStore(paths, certs_config)
    cluster_name = cluster_config.kubernetes_config.cluster_name
    LOGGER.info(
        "Setting up %s for IP: %s",
        paths.profile(cluster_name),
        node.ip,
        extra={"cluster": cluster_name, "node": node.name},
    )

    try:
        ca_state = ca_store.ensure_ca_certs()
    except CertSetupError as e:
        raise CertSetupError(f"shared CA certs: {e}") from e

    try:
        profile = generate_profile_certs(cluster_config, node, ca_state, paths, certs_config)
    except CertSetupError as e:
        raise CertSetupError(f"profile certs: {e}") from e

    copyable_files: list[CopyableFile] = []
    try:
        for path in transfer_manifest(profile.transfer, ca_state.paths()):
            try:
                copyable_files.append(
                    FileAsset(path, GUEST_KUBERNETES_CERTS_DIR, path.name, _cert_permissions(path))
                )
            except CopyError as e:
                raise CertSetupError(f"key asset {path.name}: {e}") from e

        try:
            ca_certs = collect_ca_certs(paths)
        except CertSetupError as e:
            raise CertSetupError(f"collecting CA certs: {e}") from e

        for source, destination in ca_certs.items():
            try:
                copyable_files.append(
                    FileAsset(source, destination.parent, destination.name, "0644")
                )
            except CopyError as e:
                raise CertSetupError(f"ca asset {source}: {e}") from e

        if node.control_plane:
            data = encode_kubeconfig(KubeconfigSettings.for_node(node))
            copyable_files.append(
                MemoryAsset(data, GUEST_PERSISTENT_DIR, "kubeconfig", "0644")
            )

        copied: list[str] = []
        for asset in copyable_files:
            try:
                runner.copy(asset)
            except CertSetupError as e:
                raise CertSetupError(f"Copy {asset.source_path}: {e}") from e
            copied.append(str(asset.target_path))
    finally:
        _close_all(copyable_files)

    try:
        install_cert_symlinks(runner, ca_certs)
    except CertSetupError as e:
        raise CertSetupError(f"certificate symlinks: {e}") from e

    try:
        renewed = generate_kubeadm_certs(runner, cluster_config)
    except CertSetupError as e:
        raise CertSetupError(f"kubeadm certs: {e}") from e

    return SetupResult(
        ca_regenerated=ca_state.regenerated,
        regenerated_certs=profile.regenerated,
        copied=copied,
        kubeadm_renewed=renewed,
    )
