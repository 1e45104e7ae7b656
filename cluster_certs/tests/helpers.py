"""Shared test doubles and certificate builders."""

from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from cluster_certs.lib.cert_utils import generate_serial_number
from cluster_certs.lib.command_runner import CopyableFile, ExecRunner, RunResult
from cluster_certs.lib.config import DistinguishedName
from cluster_certs.lib.errors import RemoteCommandError

SUBJECT_HASH = "3c8a1f2e"


class FakeRunner:
    """In-memory CommandRunner that records commands and copies.

    cat answers from files (then from copied files) and fails for unknown
    paths; openssl -hash answers SUBJECT_HASH; commands whose joined argv
    contains a registered substring fail.
    """

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.copied: dict[str, bytes] = {}
        self.copied_permissions: dict[str, str] = {}
        self.files: dict[str, bytes] = {}
        self.failing: list[str] = []

    def fail_when(self, substring: str) -> None:
        self.failing.append(substring)

    def run_cmd(self, args: list[str]) -> RunResult:
        self.commands.append(list(args))
        joined = " ".join(args)
        for substring in self.failing:
            if substring in joined:
                raise RemoteCommandError(
                    f"{joined}: exit status 1",
                    args_list=args,
                    exit_code=1,
                    stderr=b"command failed",
                )

        if args[0] == "cat":
            path = args[1]
            if path in self.files:
                return RunResult(args=list(args), stdout=self.files[path])
            if path in self.copied:
                return RunResult(args=list(args), stdout=self.copied[path])
            raise RemoteCommandError(
                f"{joined}: exit status 1",
                args_list=args,
                exit_code=1,
                stderr=f"cat: {path}: No such file or directory".encode(),
            )
        if args[:3] == ["openssl", "x509", "-hash"]:
            return RunResult(args=list(args), stdout=f"{SUBJECT_HASH}\n".encode())
        return RunResult(args=list(args))

    def copy(self, asset: CopyableFile) -> None:
        self.copied[str(asset.target_path)] = asset.read()
        self.copied_permissions[str(asset.target_path)] = asset.permissions

    def joined_commands(self) -> list[str]:
        return [" ".join(command) for command in self.commands]


def build_cert(
    key: RSAPrivateKey,
    not_before: datetime,
    not_after: datetime,
    common_name: str = "test",
) -> x509.Certificate:
    """Build a self-signed certificate with an explicit validity window."""
    name = DistinguishedName(common_name=common_name).to_x509_name()
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(generate_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )


def certificate_sans(cert: x509.Certificate) -> tuple[list[str], list[str]]:
    """Return (ip_strings, dns_names) from the certificate's SAN extension."""
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return [], []
    ips = [str(ip) for ip in san.get_values_for_type(x509.IPAddress)]
    return ips, san.get_values_for_type(x509.DNSName)


class StagedHashRunner(ExecRunner):
    """ExecRunner under a staging root whose openssl answers SUBJECT_HASH.

    Every other command, the trust store shell scripts included, really runs.
    """

    def run_cmd(self, args: list[str]) -> RunResult:
        if args[0] == "openssl":
            return RunResult(args=list(args), stdout=f"{SUBJECT_HASH}\n".encode())
        return super().run_cmd(args)
