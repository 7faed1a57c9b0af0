from __future__ import annotations


class DeployError(RuntimeError):
    """Base installer/lifecycle error. Terminal for the current invocation."""


class UnsupportedPlatform(DeployError):
    """Host OS could not be identified or is not supported."""


class ComposeUnavailable(DeployError):
    """Neither `docker compose` nor `docker-compose` is usable."""


class PackageInstallFailed(DeployError):
    def __init__(self, package: str, returncode: int, message: str | None = None):
        super().__init__(message or f"Failed to install package {package!r} (exit code {returncode}).")
        self.package = package
        self.returncode = returncode


class DockerInstallFailed(DeployError):
    """Docker engine bootstrap failed."""


class ArtifactFetchFailed(DeployError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class AlreadyDone(DeployError):
    """Already installed or already in the requested state."""


class NotInstalled(DeployError):
    pass


class NotRunning(DeployError):
    pass


class PrivilegeRequired(DeployError):
    pass


class UserCancelled(DeployError):
    pass
