from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

import httpx
import yaml

from .errors import AlreadyDone, ArtifactFetchFailed, DockerInstallFailed
from .identity import COMPOSE_FILENAME, ENV_FILENAME, DeploymentIdentity, InstallationLayout
from .packages import PackageManagerAdapter, adapter_for
from .process import CommandRunner
from .prober import HostProfile
from .reporting import LogReporter, Reporter

logger = logging.getLogger(__name__)

DOCKER_BOOTSTRAP_CMD = "curl -fsSL https://get.docker.com | sh"
DOWNLOAD_TIMEOUT_S = 30.0
_IMAGE_FORMAT = "{{.Repository}}:{{.Tag}} {{.ID}}"


def _download_file(client: httpx.Client, url: str, dest: Path) -> None:
    try:
        with client.stream("GET", url) as resp:
            resp.raise_for_status()
            with dest.open("wb") as f:
                for chunk in resp.iter_bytes():
                    if chunk:
                        f.write(chunk)
    except httpx.HTTPStatusError as exc:
        raise ArtifactFetchFailed(url, f"HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise ArtifactFetchFailed(url, str(exc) or exc.__class__.__name__) from exc
    except OSError as exc:
        raise ArtifactFetchFailed(url, str(exc)) from exc


def validate_compose_file(path: Path, *, url: str) -> None:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ArtifactFetchFailed(url, f"invalid compose file ({exc})") from exc
    if not isinstance(data, dict) or not data.get("services"):
        raise ArtifactFetchFailed(url, "compose file defines no services")


class Provisioner:
    """Installs prerequisites and manages the on-disk deployment artifacts.

    The package-manager adapter is resolved (and refreshed) lazily on the first
    package install and kept on the instance for the rest of the run.
    """

    def __init__(
        self,
        identity: DeploymentIdentity,
        runner: CommandRunner,
        reporter: Reporter | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self.identity = identity
        self._runner = runner
        self._reporter = reporter or LogReporter()
        self._transport = transport
        self._adapter: PackageManagerAdapter | None = None

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=DOWNLOAD_TIMEOUT_S,
            follow_redirects=True,
            transport=self._transport,
        )

    def ensure_package(self, host: HostProfile, package: str, command: str | None = None) -> bool:
        if self._runner.which(command or package):
            return False
        if self._adapter is None:
            self._reporter.info(f"Updating package lists with {host.package_manager}...")
            self._adapter = adapter_for(host, self._runner)
            self._adapter.refresh()
        self._reporter.info(f"Installing package: {package}")
        self._adapter.install(package)
        self._reporter.ok(f"Installed {package}.")
        return True

    def ensure_docker_engine(self) -> bool:
        if self._runner.which("docker"):
            return False
        self._reporter.info("Installing Docker using the official convenience script.")
        res = self._runner.run(DOCKER_BOOTSTRAP_CMD, shell=True)
        if res.returncode != 0:
            raise DockerInstallFailed(f"Docker installation failed (exit code {res.returncode}).")
        if not self._runner.which("docker"):
            raise DockerInstallFailed("Docker installation finished but `docker` is not on PATH.")
        self._reporter.ok("Docker installed.")
        return True

    def fetch_deployment_artifacts(self, layout: InstallationLayout) -> None:
        """Download the compose file and env template and publish them atomically.

        Files are staged in a temporary sibling of ``config_dir`` and renamed into
        place only after both downloads succeed and the compose file parses, so a
        failed fetch never leaves a half-initialized installation behind.
        """
        config_dir = layout.config_dir
        if config_dir.exists():
            raise AlreadyDone(f"{config_dir} already exists.")
        config_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{config_dir.name}.", suffix=".staging", dir=config_dir.parent))
        try:
            with self._client() as client:
                self._reporter.info("Fetching docker-compose file")
                _download_file(client, self.identity.compose_url, staging / COMPOSE_FILENAME)
                self._reporter.info("Fetching example .env file")
                _download_file(client, self.identity.env_template_url, staging / ENV_FILENAME)
            validate_compose_file(staging / COMPOSE_FILENAME, url=self.identity.compose_url)
            os.chmod(staging / ENV_FILENAME, 0o600)
            os.chmod(staging, 0o755)
            layout.data_dir.mkdir(parents=True, exist_ok=True)
            os.replace(staging, config_dir)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        self._reporter.ok(f"Files saved in {config_dir}")

    def install_or_update_manager_binary(self, layout: InstallationLayout) -> bool:
        url = (self.identity.script_url or "").strip()
        if not url:
            self._reporter.warn("No self-update URL configured; skipping manager install.")
            return False
        target = layout.binary_path
        self._reporter.info(f"Installing {self.identity.name} to {target}")
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            with self._client() as client:
                _download_file(client, url, tmp_path)
            os.chmod(tmp_path, 0o755)
            os.replace(tmp_path, target)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        self._reporter.ok(f"Installed {target}")
        return True

    def remove_manager_binary(self, layout: InstallationLayout) -> None:
        self._reporter.info(f"Removing {layout.binary_path}")
        layout.binary_path.unlink(missing_ok=True)

    def remove_deployment_artifacts(self, layout: InstallationLayout) -> None:
        self._reporter.info("Removing configuration and data directories")
        for path in (layout.config_dir, layout.data_dir):
            if path.exists():
                shutil.rmtree(path)
        self._reporter.ok("Configuration and data directories removed.")

    def remove_associated_images(self, pattern: str) -> list[str]:
        """Remove images whose repository contains `pattern`. Best effort."""
        res = self._runner.run(["docker", "images", "--format", _IMAGE_FORMAT], capture_output=True)
        if res.returncode != 0:
            self._reporter.warn("Could not list Docker images; skipping image cleanup.")
            return []
        image_ids: list[str] = []
        for line in (res.stdout or "").splitlines():
            ref, _, image_id = line.strip().rpartition(" ")
            if pattern in ref and image_id and image_id not in image_ids:
                image_ids.append(image_id)
        if not image_ids:
            return []
        self._reporter.info(f"Removing Docker images of {self.identity.title}")
        removed: list[str] = []
        for image_id in image_ids:
            rm = self._runner.run(["docker", "rmi", image_id], capture_output=True)
            if rm.returncode == 0:
                removed.append(image_id)
                self._reporter.info(f"Removed image: {image_id}")
            else:
                detail = (rm.stderr or "").strip() or f"exit code {rm.returncode}"
                self._reporter.warn(f"Could not remove image {image_id}: {detail}")
        return removed
