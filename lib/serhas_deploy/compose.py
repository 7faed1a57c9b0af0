from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .errors import DeployError
from .process import CommandRunner


@dataclass(frozen=True)
class ComposeInvocation:
    """A detected compose command bound to one compose file and project."""

    command: tuple[str, ...]
    compose_file: Path
    project: str

    def args(self, *extra: str) -> list[str]:
        return [*self.command, "-f", str(self.compose_file), "-p", self.project, *extra]


class Compose:
    def __init__(self, invocation: ComposeInvocation, runner: CommandRunner):
        self.invocation = invocation
        self._runner = runner

    def _run(self, *extra: str, capture_output: bool = False) -> subprocess.CompletedProcess[str]:
        return self._runner.run(self.invocation.args(*extra), capture_output=capture_output)

    def _checked(self, *extra: str) -> None:
        res = self._run(*extra)
        if res.returncode != 0:
            raise DeployError(f"docker compose {extra[0]} failed (exit code {res.returncode}).")

    def container_ids(self) -> list[str]:
        res = self._run("ps", "-q", "-a", capture_output=True)
        if res.returncode != 0:
            return []
        return [line.strip() for line in (res.stdout or "").splitlines() if line.strip()]

    def up(self) -> None:
        self._checked("up", "-d", "--remove-orphans")

    def down(self) -> None:
        self._checked("down")

    def pull(self) -> None:
        self._checked("pull")

    def follow_logs(self) -> int:
        return self._run("logs", "-f").returncode

    def exec(
        self,
        service: str,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        tty: bool = True,
    ) -> int:
        extra: list[str] = ["exec"]
        if not tty:
            extra.append("-T")
        for key, value in (env or {}).items():
            extra.extend(["-e", f"{key}={value}"])
        extra.append(service)
        extra.extend(argv)
        return self._run(*extra).returncode
