"""Per-profile leaf certificates: user client, API server and aggregator proxy client."""

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .ca_utils import generate_signed_cert
from .config import CertsConfig, ClusterConfig, LocalPaths, Node
from .errors import CertSetupError, CopyError, GenerationError
from .logging_config import LOGGER
from .models import CAState, CredentialPair, CredentialStatus, ProfileCertsResult
from .san import SANSet, apiserver_san_set
from .validity import ensure_valid


@dataclass(frozen=True)
class LeafCertSpec:
    """One leaf certificate of a profile.

    Attributes:
        subject: Common name of the certificate
        pair: Canonical cert/key paths consumers reference
        issuer: CA pair that signs the certificate
        sans: IPs and DNS names (empty for client certificates)
        fingerprinted: Cache under a SAN-fingerprint suffix and promote to pair
        transfer: Copy the pair to the node
    """

    subject: str
    pair: CredentialPair
    issuer: CredentialPair
    sans: SANSet = field(default_factory=SANSet)
    fingerprinted: bool = False
    transfer: bool = True

    def effective_pair(self) -> CredentialPair:
        """Return the pair that is validated and generated (fingerprint-suffixed if fingerprinted)."""
        if self.fingerprinted:
            return self.pair.with_suffix(self.sans.fingerprint())
        return self.pair


def leaf_cert_specs(
    paths: LocalPaths,
    cluster_name: str,
    ca_state: CAState,
    sans: SANSet,
    config: CertsConfig,
) -> tuple[LeafCertSpec, ...]:
    """Return the ordered leaf certificate specs of a control-plane profile."""
    profile = paths.profile(cluster_name)
    return (
        # stays on the host for the kubeconfig of the host-side client
        LeafCertSpec(
            subject=config.client_subject,
            pair=CredentialPair(paths.client_cert(cluster_name), paths.client_key(cluster_name)),
            issuer=ca_state.ca,
            transfer=False,
        ),
        LeafCertSpec(
            subject=config.apiserver_subject,
            pair=CredentialPair(profile / "apiserver.crt", profile / "apiserver.key"),
            issuer=ca_state.ca,
            sans=sans,
            fingerprinted=True,
        ),
        LeafCertSpec(
            subject=config.proxy_client_subject,
            pair=CredentialPair(profile / "proxy-client.crt", profile / "proxy-client.key"),
            issuer=ca_state.proxy_ca,
        ),
    )


def _promote(source: Path, destination: Path) -> None:
    LOGGER.info("copying %s -> %s", source, destination)
    try:
        shutil.copyfile(source, destination)
        shutil.copymode(source, destination)
    except OSError as e:
        raise CopyError(f"copy {source} -> {destination}: {e}") from e


def generate_leaf_cert(
    spec: LeafCertSpec,
    cluster_config: ClusterConfig,
    config: CertsConfig,
    force: bool = False,
) -> CredentialStatus:
    """Reuse or (re)issue one leaf certificate.

    Args:
        spec: Leaf certificate to provision
        cluster_config: Supplies the certificate expiration
        config: Key parameters
        force: Regenerate even if the cached pair is valid (CA was regenerated)

    Returns:
        REUSED or REGENERATED

    Raises:
        GenerationError: If signing fails
        CopyError: If promoting the fingerprinted pair to the canonical paths fails
    """
    effective = spec.effective_pair()

    def generate(target: CredentialPair) -> None:
        LOGGER.info("generating %s signed cert: %s", spec.subject, target.key_path)
        try:
            generate_signed_cert(
                target.cert_path,
                target.key_path,
                spec.subject,
                spec.sans.ip_strings(),
                spec.sans.alternate_names,
                spec.issuer.cert_path,
                spec.issuer.key_path,
                cluster_config.cert_expiration,
                config,
            )
        except (OSError, ValueError) as e:
            raise GenerationError(f"generate signed cert for {spec.subject!r}: {e}") from e

    status = ensure_valid(effective, generate, force=force)
    if status is CredentialStatus.REUSED:
        LOGGER.info("skipping %s signed cert generation: %s", spec.subject, effective.key_path)

    # a reused fingerprint may not be the one the canonical files were last copied from
    if spec.fingerprinted:
        _promote(effective.cert_path, spec.pair.cert_path)
        _promote(effective.key_path, spec.pair.key_path)
    return status


def generate_profile_certs(
    cluster_config: ClusterConfig,
    node: Node,
    ca_state: CAState,
    paths: LocalPaths,
    config: CertsConfig,
) -> ProfileCertsResult:
    """Generate the profile certificates of a control-plane node.

    Worker nodes have no API server and get nothing. Every certificate is
    regenerated when a CA was regenerated in this run; otherwise only invalid
    ones are, and the API server certificate also when its SAN fingerprint
    changed.

    Returns:
        ProfileCertsResult with the canonical paths to transfer and the
        regenerated subjects
    """
    result = ProfileCertsResult()
    if not node.control_plane:
        return result

    k8s = cluster_config.kubernetes_config
    try:
        sans = apiserver_san_set(k8s, node)
    except ValueError as e:
        raise CertSetupError(f"getting apiserver SANs: {e}") from e

    specs = leaf_cert_specs(paths, k8s.cluster_name, ca_state, sans, config)
    for spec in specs:
        if spec.transfer:
            result.transfer.extend(spec.pair.paths())

        status = generate_leaf_cert(spec, cluster_config, config, force=ca_state.regenerated)
        if status is CredentialStatus.REGENERATED:
            result.regenerated.append(spec.subject)

    return result
