from __future__ import annotations

import pytest

from serhas_deploy.errors import (
    AlreadyDone,
    ArtifactFetchFailed,
    DeployError,
    NotInstalled,
    NotRunning,
    PrivilegeRequired,
    UserCancelled,
)
from serhas_deploy.prober import OsFamily, ServiceState, is_installed


def _snapshot(tmp_path) -> list[str]:
    return sorted(str(p.relative_to(tmp_path)) for p in tmp_path.rglob("*"))


def test_install_stop_uninstall_end_to_end(make_controller, host) -> None:
    ctl = make_controller()
    layout = ctl.layout

    profile = ctl.install()

    assert profile.os_family is OsFamily.DEBIAN
    for binary in ("jq", "curl", "docker"):
        assert host.which(binary)
    assert layout.config_dir.is_dir()
    assert layout.data_dir.is_dir()
    assert layout.compose_file_path.is_file()
    assert layout.env_file_path.is_file()
    assert layout.binary_path.is_file()
    assert host.compose_calls()[-2:] == ["up", "logs"]
    assert ctl.status() is ServiceState.RUNNING

    assert ctl.stop() is True
    assert ctl.status() is ServiceState.STOPPED

    ctl.uninstall(lambda _prompt: "y")
    assert not layout.config_dir.exists()
    assert not layout.data_dir.exists()
    assert not layout.binary_path.exists()


def test_up_always_detached_and_removes_orphans(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    up_call = next(c for c in host.calls if isinstance(c, list) and "up" in c)
    assert up_call[-3:] == ["up", "-d", "--remove-orphans"]
    assert up_call[up_call.index("-p") + 1] == "serhas"


def test_second_install_is_rejected_without_mutation(make_controller, host, tmp_path) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    before = _snapshot(tmp_path)
    calls_before = len(host.calls)

    with pytest.raises(AlreadyDone):
        ctl.install(follow_logs=False)

    assert _snapshot(tmp_path) == before
    assert len(host.calls) == calls_before


def test_install_requires_root(make_controller, host) -> None:
    ctl = make_controller(privileged=False)
    with pytest.raises(PrivilegeRequired):
        ctl.install()
    assert host.calls == []
    assert not is_installed(ctl.layout)


def test_failed_fetch_does_not_block_next_install(make_controller, host) -> None:
    import httpx
    from conftest import COMPOSE_URL, artifact_transport

    broken = make_controller(transport=artifact_transport({COMPOSE_URL: httpx.Response(500)}))
    with pytest.raises(ArtifactFetchFailed):
        broken.install(follow_logs=False)
    assert not is_installed(broken.layout)

    make_controller().install(follow_logs=False)
    assert is_installed(broken.layout)


def test_uninstall_never_installed(make_controller, host, tmp_path) -> None:
    ctl = make_controller()
    before = _snapshot(tmp_path)
    with pytest.raises(NotInstalled):
        ctl.uninstall(lambda _prompt: "y")
    assert _snapshot(tmp_path) == before
    assert host.calls == []


@pytest.mark.parametrize("answer", ["", "n", "N", "yes", "yy", " y"])
def test_uninstall_requires_exact_confirmation(make_controller, host, answer) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)

    with pytest.raises(UserCancelled):
        ctl.uninstall(lambda _prompt: answer)

    assert ctl.layout.config_dir.is_dir()
    assert ctl.layout.binary_path.is_file()
    assert ctl.status() is ServiceState.RUNNING


def test_uninstall_accepts_upper_case_y(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    ctl.uninstall(lambda _prompt: "Y")
    assert not is_installed(ctl.layout)
    assert host.running is False
    assert [img for img in host.images if "serhas" in img[0]] == []


def test_start_when_running_warns(make_controller, host, reporter) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    calls_before = host.compose_calls().count("up")

    assert ctl.start() is False
    assert host.compose_calls().count("up") == calls_before
    assert any("already running" in msg for msg in reporter.warnings())


def test_stop_when_stopped_warns(make_controller, host, reporter) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    ctl.stop()
    assert ctl.stop() is False
    assert any("not running" in msg for msg in reporter.warnings())


def test_restart(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    ctl.restart()
    assert host.compose_calls()[-2:] == ["down", "up"]

    ctl.stop()
    ctl.restart()
    assert host.compose_calls()[-1] == "up"
    assert ctl.status() is ServiceState.RUNNING


def test_operations_require_install(make_controller) -> None:
    ctl = make_controller()
    for op in (ctl.status, ctl.start, ctl.stop, ctl.restart, ctl.logs, ctl.edit_env):
        with pytest.raises(NotInstalled):
            op()
    with pytest.raises(NotInstalled):
        ctl.update()


def test_logs_and_cli_require_running(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    ctl.stop()
    with pytest.raises(NotRunning):
        ctl.logs()
    with pytest.raises(NotRunning):
        ctl.cli(["users", "list"])


def test_cli_forwards_arguments(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    host.exec_rc = 3

    assert ctl.cli(["users", "add", "--admin"], tty=False) == 3

    exec_call = host.calls[-1]
    tail = exec_call[exec_call.index("exec"):]
    assert tail == [
        "exec",
        "-T",
        "-e",
        "CLI_PROG_NAME=serhas cli",
        "serhas",
        "/app/serhas-cli.py",
        "users",
        "add",
        "--admin",
    ]


def test_update_pulls_and_restarts(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    ctl.update(follow_logs=False)
    assert host.compose_calls()[-3:] == ["pull", "down", "up"]
    assert ctl.status() is ServiceState.RUNNING


def test_edit_env_uses_configured_editor(make_controller, host) -> None:
    ctl = make_controller()
    ctl.install(follow_logs=False)
    assert ctl.edit_env() == 0
    assert host.calls[-1] == ["true", str(ctl.layout.env_file_path)]


def test_editor_falls_back_to_environment(make_controller, monkeypatch) -> None:
    from dataclasses import replace

    ctl = make_controller()
    ctl.identity = replace(ctl.identity, editor=None)
    monkeypatch.delenv("VISUAL", raising=False)
    monkeypatch.setenv("EDITOR", "vim")
    assert ctl.resolve_editor() == "vim"
    monkeypatch.delenv("EDITOR")
    assert ctl.resolve_editor() == "nano"


def test_edit_env_rejects_unparsable_editor(make_controller, host, monkeypatch) -> None:
    from dataclasses import replace

    ctl = make_controller()
    ctl.install(follow_logs=False)
    ctl.identity = replace(ctl.identity, editor=None)
    monkeypatch.delenv("VISUAL", raising=False)
    monkeypatch.setenv("EDITOR", "code --wait 'unterminated")
    calls_before = len(host.calls)

    with pytest.raises(DeployError, match="Cannot parse editor command"):
        ctl.edit_env()
    assert len(host.calls) == calls_before
