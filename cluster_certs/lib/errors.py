"""Exceptions raised by certificate setup operations."""

from collections.abc import Sequence


class CertSetupError(Exception):
    """Base class for fatal certificate setup failures."""


class LockTimeoutError(CertSetupError):
    """Cross-process lock could not be acquired within its timeout."""


class GenerationError(CertSetupError):
    """CA or signed certificate generation failed."""


class CopyError(CertSetupError):
    """A local file promotion or a transfer to the target failed."""


class TraversalError(CertSetupError):
    """Walking a trust store directory failed for a reason other than absence."""


class RemoteCommandError(CertSetupError):
    """A command issued through a CommandRunner failed.

    Attributes:
        args_list: argv of the failed command
        exit_code: exit status, None when the command could not be started
        stdout: captured standard output
        stderr: captured standard error
    """

    def __init__(
        self,
        message: str,
        args_list: Sequence[str] = (),
        exit_code: int | None = None,
        stdout: bytes = b"",
        stderr: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.args_list = list(args_list)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def wrap(self, context: str) -> "RemoteCommandError":
        """Return the same failure with context prepended to the message."""
        return RemoteCommandError(
            f"{context}: {self.args[0]}",
            args_list=self.args_list,
            exit_code=self.exit_code,
            stdout=self.stdout,
            stderr=self.stderr,
        )

    def output(self) -> str:
        """Return combined stdout and stderr for diagnostics."""
        parts = []
        if self.stdout:
            parts.append(f"-- stdout --\n{self.stdout.decode(errors='replace')}")
        if self.stderr:
            parts.append(f"-- stderr --\n{self.stderr.decode(errors='replace')}")
        return "\n".join(parts)

    def __str__(self) -> str:
        message = super().__str__()
        details = self.output()
        return f"{message}\n{details}" if details else message
