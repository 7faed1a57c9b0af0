from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .compose import Compose, ComposeInvocation
from .errors import ComposeUnavailable, UnsupportedPlatform
from .identity import InstallationLayout
from .process import CommandRunner

logger = logging.getLogger(__name__)


class OsFamily(str, Enum):
    DEBIAN = "Debian"
    REDHAT = "RedHat"
    FEDORA = "Fedora"
    ARCH = "Arch"
    UNKNOWN = "Unknown"


class ServiceState(str, Enum):
    RUNNING = "Running"
    STOPPED = "Stopped"


PACKAGE_MANAGERS: dict[OsFamily, str] = {
    OsFamily.DEBIAN: "apt-get",
    OsFamily.REDHAT: "yum",
    OsFamily.FEDORA: "dnf",
    OsFamily.ARCH: "pacman",
}

# Matched by prefix against the distribution name.
_NAME_PREFIXES: tuple[tuple[str, OsFamily], ...] = (
    ("Ubuntu", OsFamily.DEBIAN),
    ("Debian", OsFamily.DEBIAN),
    ("CentOS", OsFamily.REDHAT),
    ("AlmaLinux", OsFamily.REDHAT),
    ("Rocky", OsFamily.REDHAT),
    ("Red Hat", OsFamily.REDHAT),
    ("Fedora", OsFamily.FEDORA),
    ("Arch", OsFamily.ARCH),
)

_COMPOSE_CANDIDATES: tuple[tuple[str, ...], ...] = (
    ("docker", "compose"),
    ("docker-compose",),
)


@dataclass(frozen=True)
class HostProfile:
    os_name: str
    os_family: OsFamily
    package_manager: str
    has_docker: bool
    has_compose: bool


def _read_key(path: Path, key: str) -> str | None:
    for raw in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw.strip()
        if not line.startswith(f"{key}="):
            continue
        return line.split("=", 1)[1].strip().strip('"').strip("'") or None
    return None


def _first_word(path: Path) -> str | None:
    words = path.read_text(encoding="utf-8", errors="replace").split()
    return words[0] if words else None


def read_os_name(root: Path | str = "/") -> str | None:
    """Return the distribution name from the first release file present.

    Files are checked in priority order: lsb-release, os-release,
    redhat-release, arch-release.
    """
    etc = Path(root) / "etc"
    lsb = etc / "lsb-release"
    if lsb.is_file():
        return _read_key(lsb, "DISTRIB_ID")
    os_release = etc / "os-release"
    if os_release.is_file():
        return _read_key(os_release, "NAME")
    redhat = etc / "redhat-release"
    if redhat.is_file():
        return _first_word(redhat)
    if (etc / "arch-release").exists():
        return "Arch"
    return None


def classify_os(name: str | None) -> OsFamily:
    value = (name or "").strip()
    for prefix, family in _NAME_PREFIXES:
        if value.startswith(prefix):
            return family
    return OsFamily.UNKNOWN


def detect_host(runner: CommandRunner, root: Path | str = "/") -> HostProfile:
    name = read_os_name(root)
    if name is None:
        raise UnsupportedPlatform("Unsupported operating system: could not identify the distribution.")
    family = classify_os(name)
    if family is OsFamily.UNKNOWN:
        raise UnsupportedPlatform(f"Unsupported operating system: {name}.")
    has_docker = runner.which("docker") is not None
    has_compose = any(runner.success([*cmd, "version"]) for cmd in _COMPOSE_CANDIDATES)
    profile = HostProfile(
        os_name=name,
        os_family=family,
        package_manager=PACKAGE_MANAGERS[family],
        has_docker=has_docker,
        has_compose=has_compose,
    )
    logger.debug("detected host: %s", profile)
    return profile


def detect_compose_binary(runner: CommandRunner, layout: InstallationLayout, project: str) -> ComposeInvocation:
    for cmd in _COMPOSE_CANDIDATES:
        if runner.success([*cmd, "version"]):
            return ComposeInvocation(command=cmd, compose_file=layout.compose_file_path, project=project)
    raise ComposeUnavailable("Docker Compose is not installed. Please install Docker Compose to proceed.")


def is_installed(layout: InstallationLayout) -> bool:
    return layout.config_dir.exists()


def query_service_state(compose: Compose) -> ServiceState:
    # Always a live query; containers can change outside this process.
    if compose.container_ids():
        return ServiceState.RUNNING
    return ServiceState.STOPPED


def is_privileged() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0
