from __future__ import annotations

import subprocess
from pathlib import Path

import httpx
import pytest

from serhas_deploy.identity import DeploymentIdentity
from serhas_deploy.lifecycle import LifecycleController
from serhas_deploy.process import CommandRunner
from serhas_deploy.provisioner import Provisioner

COMPOSE_URL = "https://artifacts.example.test/deploy/docker-compose.yml"
ENV_URL = "https://artifacts.example.test/app/.env.example"
SCRIPT_URL = "https://scripts.example.test/deploy/serhas"

COMPOSE_BODY = "services:\n  serhas:\n    image: serhas/serhas:latest\n    env_file: .env\n"
ENV_BODY = "LOG_LEVEL=info\n"
SCRIPT_BODY = "#!/bin/sh\necho serhas\n"


class RecordingReporter:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, msg: str) -> None:
        self.messages.append(("info", msg))

    def ok(self, msg: str) -> None:
        self.messages.append(("ok", msg))

    def warn(self, msg: str) -> None:
        self.messages.append(("warn", msg))

    def warnings(self) -> list[str]:
        return [msg for level, msg in self.messages if level == "warn"]


class FakeHost(CommandRunner):
    """Simulates package managers, Docker and Compose for one host."""

    def __init__(self, binaries: set[str] | None = None) -> None:
        self.binaries: set[str] = set(binaries if binaries is not None else {"curl"})
        self.compose_plugin = True
        self.legacy_compose = False
        self.running = False
        self.images: list[tuple[str, str]] = [
            ("serhas/serhas:latest", "aaa111"),
            ("serhas/worker:latest", "bbb222"),
            ("postgres:16", "ccc333"),
        ]
        self.rmi_fail: set[str] = set()
        self.docker_install_rc = 0
        self.package_rc = 0
        self.exec_rc = 0
        self.calls: list[list[str] | str] = []

    def _result(self, args, rc: int = 0, stdout: str = "", stderr: str = ""):
        return subprocess.CompletedProcess(args, rc, stdout, stderr)

    def compose_calls(self) -> list[str]:
        actions = []
        for call in self.calls:
            if isinstance(call, list) and "-p" in call:
                actions.append(call[call.index("-p") + 2])
        return actions

    def run(self, args, *, capture_output=False, shell=False, env=None):
        self.calls.append(args if isinstance(args, str) else list(args))
        if isinstance(args, str):
            if "get.docker.com" in args and self.docker_install_rc == 0:
                self.binaries.add("docker")
            return self._result(args, self.docker_install_rc)
        args = list(args)
        tool = args[0]
        if tool in {"apt-get", "yum", "dnf", "pacman"}:
            if self.package_rc:
                return self._result(args, self.package_rc)
            if "install" in args or "-S" in args:
                self.binaries.add(args[-1])
            return self._result(args)
        if "-p" in args:
            action = args[args.index("-p") + 2]
            if action == "ps":
                return self._result(args, stdout="c0ffee\n" if self.running else "")
            if action == "up":
                self.running = True
            elif action == "down":
                self.running = False
            elif action == "exec":
                return self._result(args, self.exec_rc)
            return self._result(args)
        if args[:2] == ["docker", "images"]:
            out = "".join(f"{ref} {image_id}\n" for ref, image_id in self.images)
            return self._result(args, stdout=out)
        if args[:2] == ["docker", "rmi"]:
            image_id = args[2]
            if image_id in self.rmi_fail:
                return self._result(args, 1, stderr="image is in use")
            self.images = [img for img in self.images if img[1] != image_id]
            return self._result(args)
        return self._result(args)

    def success(self, args) -> bool:
        args = list(args)
        if args[:2] == ["docker", "compose"]:
            return "docker" in self.binaries and self.compose_plugin
        if args[:1] == ["docker-compose"]:
            return self.legacy_compose
        return True

    def which(self, command: str) -> str | None:
        return f"/usr/bin/{command}" if command in self.binaries else None


def artifact_transport(overrides: dict[str, httpx.Response] | None = None) -> httpx.MockTransport:
    bodies = {COMPOSE_URL: COMPOSE_BODY, ENV_URL: ENV_BODY, SCRIPT_URL: SCRIPT_BODY}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if overrides and url in overrides:
            return overrides[url]
        if url in bodies:
            return httpx.Response(200, text=bodies[url])
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(handler)


def write_release(root: Path, name: str, content: str) -> Path:
    etc = root / "etc"
    etc.mkdir(parents=True, exist_ok=True)
    path = etc / name
    path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def identity(tmp_path) -> DeploymentIdentity:
    return DeploymentIdentity(
        name="serhas",
        script_url=SCRIPT_URL,
        compose_url=COMPOSE_URL,
        env_template_url=ENV_URL,
        install_root=str(tmp_path / "opt"),
        data_root=str(tmp_path / "var" / "lib"),
        bin_dir=str(tmp_path / "usr" / "local" / "bin"),
        editor="true",
    )


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def host_root(tmp_path) -> Path:
    return write_release(tmp_path / "hostroot", "os-release", 'NAME="Ubuntu"\nID=ubuntu\n')


@pytest.fixture
def make_controller(identity, host, reporter, host_root):
    def _make(
        transport: httpx.MockTransport | None = None,
        privileged: bool = True,
        sink=None,
    ) -> LifecycleController:
        sink = sink or reporter
        provisioner = Provisioner(identity, host, sink, transport=transport or artifact_transport())
        return LifecycleController(
            identity,
            runner=host,
            reporter=sink,
            provisioner=provisioner,
            root=host_root,
            privileged=lambda: privileged,
        )

    return _make
