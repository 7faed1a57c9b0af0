from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_NAME = "serhas"
DEFAULT_SCRIPT_URL = "https://raw.githubusercontent.com/theserhas/deploy/master/serhas.sh"
DEFAULT_COMPOSE_URL = "https://raw.githubusercontent.com/theserhas/deploy/master/docker-compose.yml"
DEFAULT_ENV_TEMPLATE_URL = "https://raw.githubusercontent.com/theserhas/serhas/master/.env.example"
DEFAULT_INSTALL_ROOT = "/opt"
DEFAULT_DATA_ROOT = "/var/lib"
DEFAULT_BIN_DIR = "/usr/local/bin"

COMPOSE_FILENAME = "docker-compose.yml"
ENV_FILENAME = ".env"


@dataclass(frozen=True)
class DeploymentIdentity:
    """Everything that names or locates one deployment of the managed app.

    `name` doubles as the Compose project name, the manager binary name and the
    pattern used to find the deployment's images on uninstall.
    """

    name: str = DEFAULT_NAME
    display_name: str | None = None
    service: str | None = None
    cli_program: str | None = None
    script_url: str = DEFAULT_SCRIPT_URL
    compose_url: str = DEFAULT_COMPOSE_URL
    env_template_url: str = DEFAULT_ENV_TEMPLATE_URL
    install_root: str = DEFAULT_INSTALL_ROOT
    data_root: str = DEFAULT_DATA_ROOT
    bin_dir: str = DEFAULT_BIN_DIR
    editor: str | None = None

    @property
    def title(self) -> str:
        return self.display_name or self.name.capitalize()

    @property
    def project(self) -> str:
        return self.name

    @property
    def service_name(self) -> str:
        return self.service or self.name

    @property
    def cli_program_path(self) -> str:
        return self.cli_program or f"/app/{self.name}-cli.py"

    @property
    def image_pattern(self) -> str:
        return self.name

    def layout(self) -> InstallationLayout:
        return InstallationLayout(
            config_dir=Path(self.install_root) / self.name,
            data_dir=Path(self.data_root) / self.name,
            binary_path=Path(self.bin_dir) / self.name,
        )


@dataclass(frozen=True)
class InstallationLayout:
    config_dir: Path
    data_dir: Path
    binary_path: Path

    @property
    def compose_file_path(self) -> Path:
        return self.config_dir / COMPOSE_FILENAME

    @property
    def env_file_path(self) -> Path:
        return self.config_dir / ENV_FILENAME
