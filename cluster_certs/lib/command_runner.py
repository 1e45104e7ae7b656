"""Command execution and file transfer against a (possibly remote) target."""

import re
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Protocol

from .config import GUEST_CERT_AUTH_DIR, GUEST_CERT_STORE_DIR, GUEST_PERSISTENT_DIR, KUBEADM_YAML_PATH
from .errors import CopyError, RemoteCommandError
from .logging_config import LOGGER

# Guest directories an ExecRunner staging root relocates, matched as whole path components
STAGED_GUEST_DIRS = (
    GUEST_PERSISTENT_DIR,
    GUEST_CERT_AUTH_DIR,
    GUEST_CERT_STORE_DIR,
    KUBEADM_YAML_PATH.parent,
)
_GUEST_PATH = re.compile(
    r"(?<![\w./-])(?:"
    + "|".join(re.escape(str(d)) for d in STAGED_GUEST_DIRS)
    + r")(?![\w.-])"
)


@dataclass
class RunResult:
    """Captured outcome of a command."""

    args: list[str]
    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: int = 0

    def output(self) -> str:
        """Return stdout and stderr decoded for logging."""
        return (self.stdout + self.stderr).decode(errors="replace")


class CopyableFile(Protocol):
    """A file to place on the target: source, destination and permissions."""

    source_path: str
    target_dir: PurePosixPath
    target_name: str
    permissions: str

    @property
    def target_path(self) -> PurePosixPath: ...

    def read(self) -> bytes: ...

    def close(self) -> None: ...


class CommandRunner(Protocol):
    """Executes commands and copies files on the target.

    run_cmd raises RemoteCommandError when the command cannot be started or
    exits non-zero.
    """

    def run_cmd(self, args: list[str]) -> RunResult: ...

    def copy(self, asset: CopyableFile) -> None: ...


class FileAsset:
    """A local file destined for the target.

    The source is opened on construction and must be closed by the caller
    once the copy is done.
    """

    def __init__(
        self,
        source_path: Path | str,
        target_dir: PurePosixPath | str,
        target_name: str,
        permissions: str,
    ) -> None:
        self.source_path = str(source_path)
        self.target_dir = PurePosixPath(target_dir)
        self.target_name = target_name
        self.permissions = permissions
        try:
            self._handle: BinaryIO | None = open(source_path, "rb")
        except OSError as e:
            raise CopyError(f"open asset {source_path}: {e}") from e

    @property
    def target_path(self) -> PurePosixPath:
        return self.target_dir / self.target_name

    def read(self) -> bytes:
        if self._handle is None:
            raise CopyError(f"asset {self.source_path} is closed")
        self._handle.seek(0)
        return self._handle.read()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


class MemoryAsset:
    """In-memory content destined for the target."""

    def __init__(
        self,
        data: bytes,
        target_dir: PurePosixPath | str,
        target_name: str,
        permissions: str,
    ) -> None:
        self.data = data
        self.source_path = "memory"
        self.target_dir = PurePosixPath(target_dir)
        self.target_name = target_name
        self.permissions = permissions

    @property
    def target_path(self) -> PurePosixPath:
        return self.target_dir / self.target_name

    def read(self) -> bytes:
        return self.data

    def close(self) -> None:
        pass


class ExecRunner:
    """Runs commands on the local machine with subprocess.

    root, when given, stages the guest layout into a directory. Guest paths
    in copy destinations and in command arguments (shell scripts included)
    are moved below root and a leading sudo is dropped. The staged guest
    cert store is created up front.
    """

    def __init__(self, root: Path | None = None, timeout: float | None = None) -> None:
        if root is not None and shlex.quote(str(root)) != str(root):
            raise ValueError(f"staging root {root} must not need shell quoting")
        self.root = root
        self.timeout = timeout
        if root is not None:
            self.staged(GUEST_CERT_STORE_DIR).mkdir(parents=True, exist_ok=True)

    def staged(self, guest_path: PurePosixPath | str) -> Path:
        """Return where guest_path lives on this machine."""
        path = Path(str(guest_path))
        if self.root is None:
            return path
        return self.root / path.relative_to(path.anchor)

    def _stage_args(self, args: list[str]) -> list[str]:
        if self.root is None:
            return list(args)
        if args and args[0] == "sudo":
            args = args[1:]
        root = str(self.root)
        return [_GUEST_PATH.sub(lambda m: root + m.group(0), arg) for arg in args]

    def run_cmd(self, args: list[str]) -> RunResult:
        args = self._stage_args(args)
        LOGGER.info("Run: %s", shlex.join(args))
        try:
            proc = subprocess.run(args, capture_output=True, timeout=self.timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RemoteCommandError(f"{shlex.join(args)}: {e}", args_list=args) from e

        result = RunResult(
            args=list(args),
            stdout=proc.stdout,
            stderr=proc.stderr,
            exit_code=proc.returncode,
        )
        if proc.returncode != 0:
            raise RemoteCommandError(
                f"{shlex.join(args)}: exit status {proc.returncode}",
                args_list=args,
                exit_code=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        return result

    def copy(self, asset: CopyableFile) -> None:
        target = self.staged(asset.target_path)
        LOGGER.info("copy %s --> %s (%s)", asset.source_path, target, asset.permissions)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(asset.read())
            target.chmod(int(asset.permissions, 8))
        except OSError as e:
            raise CopyError(f"copy {asset.source_path} -> {target}: {e}") from e
