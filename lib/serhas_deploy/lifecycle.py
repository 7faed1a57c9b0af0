from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Callable, Sequence

from .compose import Compose
from .errors import AlreadyDone, DeployError, NotInstalled, NotRunning, PrivilegeRequired, UserCancelled
from .identity import DeploymentIdentity
from .process import CommandRunner
from .prober import (
    HostProfile,
    ServiceState,
    detect_compose_binary,
    detect_host,
    is_installed,
    is_privileged,
    query_service_state,
)
from .provisioner import Provisioner
from .reporting import LogReporter, Reporter

DEFAULT_EDITOR = "nano"
CONFIRM_ANSWERS = frozenset({"y", "Y"})


class LifecycleController:
    """One method per manager command.

    Each method checks its guards against live state and then delegates to the
    provisioner or to Compose. Nothing about the service is cached between
    calls: running/stopped is re-queried every time it matters.
    """

    def __init__(
        self,
        identity: DeploymentIdentity,
        *,
        runner: CommandRunner | None = None,
        reporter: Reporter | None = None,
        provisioner: Provisioner | None = None,
        root: Path | str = "/",
        privileged: Callable[[], bool] = is_privileged,
    ):
        self.identity = identity
        self.layout = identity.layout()
        self._runner = runner or CommandRunner()
        self._reporter = reporter or LogReporter()
        self.provisioner = provisioner or Provisioner(identity, self._runner, self._reporter)
        self._root = root
        self._privileged = privileged

    @property
    def title(self) -> str:
        return self.identity.title

    def _require_privileged(self) -> None:
        if not self._privileged():
            raise PrivilegeRequired("This command must be run as root. Please use sudo.")

    def _require_installed(self) -> None:
        if not is_installed(self.layout):
            raise NotInstalled(f"{self.title} is not installed. Use 'install' to install.")

    def _compose(self) -> Compose:
        invocation = detect_compose_binary(self._runner, self.layout, self.identity.project)
        return Compose(invocation, self._runner)

    def _is_running(self, compose: Compose) -> bool:
        return query_service_state(compose) is ServiceState.RUNNING

    def _require_running(self, compose: Compose) -> None:
        if not self._is_running(compose):
            raise NotRunning(f"{self.title} is not running. Use 'start' to start.")

    def _bring_up(self, compose: Compose) -> None:
        self._reporter.info(f"Starting {self.title} service")
        compose.up()
        self._reporter.ok(f"{self.title} service started.")

    def _bring_down(self, compose: Compose) -> None:
        self._reporter.info(f"Stopping {self.title} service")
        compose.down()
        self._reporter.ok(f"{self.title} service stopped.")

    def _stream_logs(self, compose: Compose) -> int:
        self._reporter.info(f"Displaying {self.title} service logs (Ctrl+C to stop)")
        try:
            return compose.follow_logs()
        except KeyboardInterrupt:
            # interrupt only ends the stream; the service keeps running
            return 0

    def install(self, *, follow_logs: bool = True) -> HostProfile:
        self._require_privileged()
        if is_installed(self.layout):
            raise AlreadyDone(f"{self.title} is already installed. Use 'update' to update.")
        host = detect_host(self._runner, self._root)
        self._reporter.info(f"Detected {host.os_name} ({host.package_manager}).")
        self.provisioner.ensure_package(host, "jq")
        self.provisioner.ensure_package(host, "curl")
        self.provisioner.ensure_docker_engine()
        compose = self._compose()
        self.provisioner.install_or_update_manager_binary(self.layout)
        self.provisioner.fetch_deployment_artifacts(self.layout)
        self._bring_up(compose)
        self._reporter.ok(f"{self.title} installed successfully.")
        if follow_logs:
            self._stream_logs(compose)
        return host

    def update(self, *, follow_logs: bool = True) -> None:
        self._require_privileged()
        self._require_installed()
        compose = self._compose()
        self.provisioner.install_or_update_manager_binary(self.layout)
        self._reporter.info(f"Updating {self.title} to the latest version")
        compose.pull()
        self._reporter.info(f"Restarting {self.title} service")
        self._bring_down(compose)
        self._bring_up(compose)
        self._reporter.ok(f"{self.title} updated successfully.")
        if follow_logs:
            self._stream_logs(compose)

    def uninstall(self, confirm: Callable[[str], str]) -> list[str]:
        self._require_privileged()
        self._require_installed()
        answer = confirm(
            f"Are you sure you want to uninstall {self.title}? "
            "This will remove all configuration and data. (y/N)"
        )
        if answer not in CONFIRM_ANSWERS:
            raise UserCancelled("Uninstallation cancelled.")
        compose = self._compose()
        if self._is_running(compose):
            self._bring_down(compose)
        self.provisioner.remove_deployment_artifacts(self.layout)
        removed = self.provisioner.remove_associated_images(self.identity.image_pattern)
        self.provisioner.remove_manager_binary(self.layout)
        self._reporter.ok(f"{self.title} uninstalled successfully.")
        return removed

    def status(self) -> ServiceState:
        self._require_installed()
        return query_service_state(self._compose())

    def start(self) -> bool:
        self._require_installed()
        compose = self._compose()
        if self._is_running(compose):
            self._reporter.warn(f"{self.title} is already running.")
            return False
        self._bring_up(compose)
        return True

    def stop(self) -> bool:
        self._require_installed()
        compose = self._compose()
        if not self._is_running(compose):
            self._reporter.warn(f"{self.title} is not running.")
            return False
        self._bring_down(compose)
        return True

    def restart(self) -> None:
        self._require_installed()
        compose = self._compose()
        if self._is_running(compose):
            self._bring_down(compose)
        else:
            self._reporter.warn(f"{self.title} is not running. Starting {self.title}.")
        self._bring_up(compose)

    def logs(self) -> int:
        self._require_installed()
        compose = self._compose()
        self._require_running(compose)
        return self._stream_logs(compose)

    def resolve_editor(self) -> str:
        return (
            self.identity.editor
            or os.environ.get("VISUAL")
            or os.environ.get("EDITOR")
            or DEFAULT_EDITOR
        )

    def edit_env(self) -> int:
        self._require_installed()
        editor = self.resolve_editor()
        try:
            argv = [*shlex.split(editor), str(self.layout.env_file_path)]
        except ValueError as exc:
            raise DeployError(f"Cannot parse editor command: {editor} ({exc}).") from exc
        try:
            res = self._runner.run(argv)
        except FileNotFoundError as exc:
            raise DeployError(f"Editor not found: {editor}. Set $EDITOR or the 'editor' config key.") from exc
        return res.returncode

    def cli(self, args: Sequence[str], *, tty: bool = True) -> int:
        self._require_installed()
        compose = self._compose()
        self._require_running(compose)
        return compose.exec(
            self.identity.service_name,
            [self.identity.cli_program_path, *args],
            env={"CLI_PROG_NAME": f"{self.identity.name} cli"},
            tty=tty,
        )
