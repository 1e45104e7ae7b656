"""Tests for command execution and file assets."""

import stat
from pathlib import Path, PurePosixPath

import pytest

from cluster_certs.lib.command_runner import ExecRunner, FileAsset, MemoryAsset
from cluster_certs.lib.errors import CopyError, RemoteCommandError


class TestExecRunner:
    """Tests for ExecRunner."""

    def test_captures_stdout(self) -> None:
        result = ExecRunner().run_cmd(["echo", "hello"])

        assert result.stdout == b"hello\n"
        assert result.exit_code == 0

    def test_non_zero_exit_raises(self) -> None:
        with pytest.raises(RemoteCommandError) as exc_info:
            ExecRunner().run_cmd(["false"])

        assert exc_info.value.exit_code == 1
        assert exc_info.value.args_list == ["false"]

    def test_failure_carries_output(self) -> None:
        with pytest.raises(RemoteCommandError, match="boom") as exc_info:
            ExecRunner().run_cmd(["/bin/sh", "-c", "echo boom >&2; exit 3"])

        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == b"boom\n"

    def test_missing_binary_raises(self) -> None:
        with pytest.raises(RemoteCommandError) as exc_info:
            ExecRunner().run_cmd(["definitely-not-a-real-binary-xyz"])

        assert exc_info.value.exit_code is None

    def test_copy_under_root_applies_permissions(self, tmp_path: Path) -> None:
        runner = ExecRunner(root=tmp_path / "stage")
        asset = MemoryAsset(b"secret", "/var/lib/minikube/certs", "apiserver.key", "0600")

        runner.copy(asset)

        target = tmp_path / "stage" / "var" / "lib" / "minikube" / "certs" / "apiserver.key"
        assert target.read_bytes() == b"secret"
        assert stat.S_IMODE(target.stat().st_mode) == 0o600

    def test_copy_failure_raises_copy_error(self, tmp_path: Path) -> None:
        runner = ExecRunner(root=tmp_path / "stage")
        (tmp_path / "stage" / "var").write_text("not a directory")

        with pytest.raises(CopyError, match="copy memory"):
            runner.copy(MemoryAsset(b"x", "/var/lib/minikube", "file", "0644"))


class TestExecRunnerStagingRoot:
    """Tests for ExecRunner commands under a staging root."""

    def test_creates_cert_store_dir(self, tmp_path: Path) -> None:
        ExecRunner(root=tmp_path / "stage")

        assert (tmp_path / "stage" / "etc" / "ssl" / "certs").is_dir()

    def test_command_reads_staged_guest_path(self, tmp_path: Path) -> None:
        stage = tmp_path / "stage"
        runner = ExecRunner(root=stage)
        runner.copy(MemoryAsset(b"cert data", "/var/lib/minikube/certs", "ca.crt", "0644"))

        result = runner.run_cmd(["cat", "/var/lib/minikube/certs/ca.crt"])

        assert result.stdout == b"cert data"
        assert result.args == ["cat", f"{stage}/var/lib/minikube/certs/ca.crt"]

    def test_sudo_script_links_inside_root(self, tmp_path: Path) -> None:
        stage = tmp_path / "stage"
        runner = ExecRunner(root=stage)
        runner.copy(MemoryAsset(b"pem", "/usr/share/ca-certificates", "a.pem", "0644"))

        result = runner.run_cmd(
            [
                "sudo",
                "/bin/bash",
                "-c",
                "test -s /usr/share/ca-certificates/a.pem && "
                "ln -fs /usr/share/ca-certificates/a.pem /etc/ssl/certs/a.pem",
            ]
        )

        link = stage / "etc" / "ssl" / "certs" / "a.pem"
        assert result.args[0] == "/bin/bash"
        assert link.is_symlink()
        assert link.read_bytes() == b"pem"

    def test_other_paths_are_left_alone(self, tmp_path: Path) -> None:
        runner = ExecRunner(root=tmp_path / "stage")

        result = runner.run_cmd(["echo", "/var/lib/minikubeX", "/opt/etc/ssl/certs", "/tmp/x"])

        assert result.stdout == b"/var/lib/minikubeX /opt/etc/ssl/certs /tmp/x\n"

    def test_no_root_runs_paths_unchanged(self) -> None:
        result = ExecRunner().run_cmd(["echo", "/var/lib/minikube/certs"])

        assert result.stdout == b"/var/lib/minikube/certs\n"

    def test_root_needing_shell_quoting_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="shell quoting"):
            ExecRunner(root=tmp_path / "my stage")


class TestFileAsset:
    """Tests for FileAsset."""

    def test_reads_source_and_builds_target_path(self, tmp_path: Path) -> None:
        source = tmp_path / "ca.crt"
        source.write_bytes(b"cert data")

        asset = FileAsset(source, "/var/lib/minikube/certs", "ca.crt", "0644")
        try:
            assert asset.read() == b"cert data"
            assert asset.read() == b"cert data"
            assert asset.target_path == PurePosixPath("/var/lib/minikube/certs/ca.crt")
        finally:
            asset.close()

    def test_missing_source_raises_copy_error(self, tmp_path: Path) -> None:
        with pytest.raises(CopyError, match="open asset"):
            FileAsset(tmp_path / "missing.crt", "/etc", "missing.crt", "0644")

    def test_read_after_close_raises(self, tmp_path: Path) -> None:
        source = tmp_path / "ca.crt"
        source.write_bytes(b"cert data")
        asset = FileAsset(source, "/etc", "ca.crt", "0644")

        asset.close()
        asset.close()

        with pytest.raises(CopyError, match="closed"):
            asset.read()
