"""Subject Alternative Names for the API server certificate."""

import hashlib
import ipaddress
from dataclasses import dataclass, field

from .config import (
    CONTROL_PLANE_ALIAS,
    DEFAULT_BIND_IPV4,
    KubernetesConfig,
    Node,
    daemon_host,
)
from .certificate_builder import IPAddress

# Reachable from inside the cluster network regardless of the service CIDR
SECONDARY_APISERVER_IP = "10.0.0.1"

FINGERPRINT_LENGTH = 8


@dataclass
class SANSet:
    """IP addresses and DNS names a certificate is issued for.

    Order is kept for certificate generation but does not affect the fingerprint.
    """

    ips: list[IPAddress] = field(default_factory=list)
    alternate_names: list[str] = field(default_factory=list)

    def fingerprint(self) -> str:
        """Return the first 8 hex chars of SHA-1 over the sorted names and IPs joined by '/'."""
        hash_input = sorted(self.alternate_names + [str(ip) for ip in self.ips])
        digest = hashlib.sha1("/".join(hash_input).encode("utf-8")).hexdigest()
        return digest[:FINGERPRINT_LENGTH]

    def ip_strings(self) -> list[str]:
        return [str(ip) for ip in self.ips]


def get_service_cluster_ip(service_cidr: str) -> IPAddress:
    """Return the first usable address of the service CIDR (network address + 1).

    Raises:
        ValueError: If service_cidr is not a valid network
    """
    network = ipaddress.ip_network(service_cidr, strict=False)
    return network.network_address + 1


def get_alternate_dns(domain: str) -> list[str]:
    """Return the in-cluster DNS names the API server answers to."""
    return [
        f"kubernetes.default.svc.{domain}",
        "kubernetes.default.svc",
        "kubernetes.default",
        "kubernetes",
        "localhost",
    ]


def apiserver_san_set(k8s: KubernetesConfig, node: Node) -> SANSet:
    """Build the SAN set of the API server serving certificate for node.

    Raises:
        ValueError: If a configured IP, the node IP or the service CIDR is malformed
    """
    service_ip = get_service_cluster_ip(k8s.service_cidr)

    ips = [ipaddress.ip_address(ip) for ip in k8s.apiserver_ips]
    ips.extend(
        [
            ipaddress.ip_address(node.ip),
            service_ip,
            ipaddress.ip_address(DEFAULT_BIND_IPV4),
            ipaddress.ip_address(SECONDARY_APISERVER_IP),
        ]
    )

    names = list(k8s.apiserver_names)
    names.extend([k8s.apiserver_name, CONTROL_PLANE_ALIAS])
    names.extend(get_alternate_dns(k8s.dns_domain))

    host = daemon_host(k8s.container_runtime)
    if host != DEFAULT_BIND_IPV4:
        # an IP goes in the IP SANs, anything else is taken to be a hostname
        try:
            ips.append(ipaddress.ip_address(host))
        except ValueError:
            names.append(host)

    return SANSet(ips=ips, alternate_names=names)
