from __future__ import annotations

from abc import ABC, abstractmethod

from .errors import PackageInstallFailed, UnsupportedPlatform
from .process import CommandRunner
from .prober import HostProfile, OsFamily


class PackageManagerAdapter(ABC):
    """OS package manager capability set: refresh metadata, install a package."""

    name: str = ""

    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def _run(self, args: list[str], *, package: str) -> None:
        res = self._runner.run(args, env=self.env())
        if res.returncode != 0:
            raise PackageInstallFailed(package, res.returncode)

    def env(self) -> dict[str, str] | None:
        return None

    @abstractmethod
    def refresh(self) -> None:
        ...

    @abstractmethod
    def install(self, package: str) -> None:
        ...


class AptAdapter(PackageManagerAdapter):
    name = "apt-get"

    def env(self) -> dict[str, str] | None:
        return {"DEBIAN_FRONTEND": "noninteractive"}

    def refresh(self) -> None:
        self._run(["apt-get", "update"], package="(package lists)")

    def install(self, package: str) -> None:
        self._run(["apt-get", "-y", "install", package], package=package)


class YumAdapter(PackageManagerAdapter):
    name = "yum"

    def refresh(self) -> None:
        self._run(["yum", "-y", "makecache"], package="(package lists)")
        # jq lives in EPEL on CentOS/Alma/Rocky.
        self._run(["yum", "install", "-y", "epel-release"], package="epel-release")

    def install(self, package: str) -> None:
        self._run(["yum", "install", "-y", package], package=package)


class DnfAdapter(PackageManagerAdapter):
    name = "dnf"

    def refresh(self) -> None:
        self._run(["dnf", "-y", "makecache"], package="(package lists)")

    def install(self, package: str) -> None:
        self._run(["dnf", "install", "-y", package], package=package)


class PacmanAdapter(PackageManagerAdapter):
    name = "pacman"

    def refresh(self) -> None:
        self._run(["pacman", "-Sy"], package="(package lists)")

    def install(self, package: str) -> None:
        self._run(["pacman", "-S", "--noconfirm", package], package=package)


ADAPTERS: dict[OsFamily, type[PackageManagerAdapter]] = {
    OsFamily.DEBIAN: AptAdapter,
    OsFamily.REDHAT: YumAdapter,
    OsFamily.FEDORA: DnfAdapter,
    OsFamily.ARCH: PacmanAdapter,
}


def adapter_for(host: HostProfile, runner: CommandRunner) -> PackageManagerAdapter:
    adapter_cls = ADAPTERS.get(host.os_family)
    if adapter_cls is None:
        raise UnsupportedPlatform(f"Unsupported operating system: {host.os_name}.")
    return adapter_cls(runner)
