from .errors import (
    AlreadyDone,
    ArtifactFetchFailed,
    ComposeUnavailable,
    DeployError,
    DockerInstallFailed,
    NotInstalled,
    NotRunning,
    PackageInstallFailed,
    PrivilegeRequired,
    UnsupportedPlatform,
    UserCancelled,
)
from .identity import DeploymentIdentity, InstallationLayout
from .lifecycle import LifecycleController
from .prober import HostProfile, OsFamily, ServiceState

__all__ = [
    "AlreadyDone",
    "ArtifactFetchFailed",
    "ComposeUnavailable",
    "DeployError",
    "DeploymentIdentity",
    "DockerInstallFailed",
    "HostProfile",
    "InstallationLayout",
    "LifecycleController",
    "NotInstalled",
    "NotRunning",
    "OsFamily",
    "PackageInstallFailed",
    "PrivilegeRequired",
    "ServiceState",
    "UnsupportedPlatform",
    "UserCancelled",
]
