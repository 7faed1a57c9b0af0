from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs external commands on the local host.

    Every package-manager, Docker and Compose call goes through one instance,
    so tests can swap in a fake host.
    """

    def run(
        self,
        args: Sequence[str] | str,
        *,
        capture_output: bool = False,
        shell: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        display = args if isinstance(args, str) else shlex.join(args)
        logger.debug("run: %s", display)
        merged_env = None
        if env:
            merged_env = os.environ.copy()
            merged_env.update(env)
        res = subprocess.run(
            args,
            shell=shell,
            text=True,
            capture_output=capture_output,
            env=merged_env,
            check=False,
        )
        logger.debug("exit %s: %s", res.returncode, display)
        return res

    def success(self, args: Sequence[str]) -> bool:
        try:
            res = subprocess.run(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=False)
        except FileNotFoundError:
            return False
        return res.returncode == 0

    def which(self, command: str) -> str | None:
        return shutil.which(command)
