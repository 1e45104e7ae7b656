#!/usr/bin/env python3
"""Set up cluster certificates for a node using the local machine as the target.

Without --staging-root the node files and trust store links are written to
the real guest paths of this machine through sudo.
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

from cluster_certs.lib.command_runner import ExecRunner
from cluster_certs.lib.config import ClusterConfig, KubernetesConfig, LocalPaths, Node
from cluster_certs.lib.errors import CertSetupError
from cluster_certs.lib.logging_config import LOGGER
from cluster_certs.lib.setup_certs import setup_certs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate cluster CA and profile certificates and install them on a node"
    )
    parser.add_argument("--cluster-name", default="minikube", help="Profile name (default: minikube)")
    parser.add_argument("--node-name", default="minikube", help="Node name (default: minikube)")
    parser.add_argument("--node-ip", required=True, help="Node IP address")
    parser.add_argument("--port", type=int, default=8443, help="API server port (default: 8443)")
    parser.add_argument(
        "--worker",
        action="store_true",
        help="Node is a worker (no API server certificate, no kubeconfig)",
    )
    parser.add_argument(
        "--kubernetes-version",
        default=KubernetesConfig.kubernetes_version,
        help=f"Kubernetes version (default: {KubernetesConfig.kubernetes_version})",
    )
    parser.add_argument(
        "--service-cidr",
        default=KubernetesConfig.service_cidr,
        help=f"Service CIDR (default: {KubernetesConfig.service_cidr})",
    )
    parser.add_argument(
        "--dns-domain",
        default=KubernetesConfig.dns_domain,
        help=f"Cluster DNS domain (default: {KubernetesConfig.dns_domain})",
    )
    parser.add_argument(
        "--apiserver-ip",
        action="append",
        default=[],
        dest="apiserver_ips",
        help="Extra API server IP SAN (repeatable)",
    )
    parser.add_argument(
        "--apiserver-name",
        action="append",
        default=[],
        dest="apiserver_names",
        help="Extra API server DNS SAN (repeatable)",
    )
    parser.add_argument(
        "--container-runtime",
        default=KubernetesConfig.container_runtime,
        help=f"Container runtime (default: {KubernetesConfig.container_runtime})",
    )
    parser.add_argument(
        "--cert-expiration-hours",
        type=int,
        default=26280,
        help="Validity of profile certificates in hours (default: 26280)",
    )
    parser.add_argument(
        "--minikube-home",
        type=Path,
        default=None,
        help="Base directory for CA and profiles (default: $MINIKUBE_HOME or ~/.minikube)",
    )
    parser.add_argument(
        "--staging-root",
        type=Path,
        default=None,
        help="Stage node files and commands below this directory instead of the filesystem root (no sudo)",
    )
    return parser


def main() -> int:
    """Run certificate setup for one node.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args()

    paths = LocalPaths(mini_path=args.minikube_home) if args.minikube_home else LocalPaths.from_env()
    cluster_config = ClusterConfig(
        kubernetes_config=KubernetesConfig(
            cluster_name=args.cluster_name,
            kubernetes_version=args.kubernetes_version,
            service_cidr=args.service_cidr,
            dns_domain=args.dns_domain,
            apiserver_ips=args.apiserver_ips,
            apiserver_names=args.apiserver_names,
            container_runtime=args.container_runtime,
        ),
        cert_expiration=timedelta(hours=args.cert_expiration_hours),
    )
    node = Node(
        name=args.node_name,
        ip=args.node_ip,
        port=args.port,
        control_plane=not args.worker,
    )

    try:
        result = setup_certs(ExecRunner(root=args.staging_root), cluster_config, node, paths)
    except CertSetupError as e:
        LOGGER.error("Certificate setup failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Certificate setup failed unexpectedly: %s", e)
        return 1

    LOGGER.info("Certificate setup complete:")
    LOGGER.info("  CA regenerated: %s", result.ca_regenerated)
    LOGGER.info("  Regenerated certs: %s", result.regenerated_certs)
    LOGGER.info("  Copied files: %d", len(result.copied))
    LOGGER.info("  Kubeadm certs renewed: %s", result.kubeadm_renewed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
