"""Test fixtures for cluster_certs tests."""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from cluster_certs.lib.cert_utils import (
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from cluster_certs.lib.certificate_builder import CertificateBuilder
from cluster_certs.lib.config import (
    CertsConfig,
    ClusterConfig,
    DistinguishedName,
    KubernetesConfig,
    LocalPaths,
    Node,
)
from cluster_certs.lib.logging_config import LOGGER
from cluster_certs.tests.helpers import FakeRunner, build_cert


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Return a fresh in-memory command runner."""
    return FakeRunner()


@pytest.fixture
def certs_config() -> CertsConfig:
    """Return certificate config with a short lock timeout."""
    return CertsConfig(key_size=2048, lock_timeout=5.0)


@pytest.fixture
def local_paths(tmp_path: Path) -> LocalPaths:
    """Return host-side layout rooted in a temporary directory."""
    return LocalPaths(mini_path=tmp_path / ".minikube")


@pytest.fixture
def cluster_config() -> ClusterConfig:
    """Return cluster config for profile 'testcluster'."""
    return ClusterConfig(
        kubernetes_config=KubernetesConfig(
            cluster_name="testcluster",
            kubernetes_version="v1.31.0",
            service_cidr="10.96.0.0/12",
            dns_domain="cluster.local",
        ),
        cert_expiration=timedelta(days=30),
    )


@pytest.fixture
def control_plane_node() -> Node:
    """Return a control-plane node."""
    return Node(name="testcluster", ip="192.168.49.2", port=8443, control_plane=True)


@pytest.fixture
def worker_node() -> Node:
    """Return a worker node."""
    return Node(name="testcluster-m02", ip="192.168.49.3", port=8443, control_plane=False)


@pytest.fixture
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for a CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_cert(ca_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed CA certificate."""
    return CertificateBuilder.build_ca(
        subject_dn=DistinguishedName(common_name="Test CA"),
        private_key=ca_key,
        validity_years=1,
    )


@pytest.fixture
def write_cert_pair() -> Callable[..., tuple[Path, Path]]:
    """Return a factory writing a cert/key pair valid until now + lifetime.

    A negative lifetime produces an expired certificate.
    """

    def _write(
        cert_path: Path,
        key_path: Path,
        lifetime: timedelta = timedelta(days=30),
    ) -> tuple[Path, Path]:
        key = generate_private_key(key_size=2048)
        now = datetime.now(UTC)
        not_before = min(now, now + lifetime) - timedelta(days=1)
        cert = build_cert(key, not_before, now + lifetime)
        cert_path.parent.mkdir(parents=True, exist_ok=True)
        cert_path.write_bytes(serialize_certificate(cert))
        key_path.write_bytes(serialize_private_key(key))
        return cert_path, key_path

    return _write


@pytest.fixture
def ca_files_on_disk(
    local_paths: LocalPaths,
    ca_key: RSAPrivateKey,
    ca_cert: x509.Certificate,
) -> LocalPaths:
    """Write a valid CA pair to both CA locations of local_paths.

    Creates:
        {mini_path}/ca.crt, ca.key
        {mini_path}/proxy-client-ca.crt, proxy-client-ca.key
    """
    local_paths.mini_path.mkdir(parents=True, exist_ok=True)
    for cert_path, key_path in (
        (local_paths.ca_cert, local_paths.ca_key),
        (local_paths.proxy_ca_cert, local_paths.proxy_ca_key),
    ):
        cert_path.write_bytes(serialize_certificate(ca_cert))
        key_path.write_bytes(serialize_private_key(ca_key))
    return local_paths


@pytest.fixture
def propagate_logs() -> Iterator[None]:
    """Let caplog see LOGGER records for the duration of a test."""
    LOGGER.propagate = True
    try:
        yield
    finally:
        LOGGER.propagate = False
