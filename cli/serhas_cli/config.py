from __future__ import annotations

import os
import tomllib
from dataclasses import asdict, dataclass, fields
from typing import Any

import tomli_w
from platformdirs import user_config_dir

from serhas_deploy.identity import (
    DEFAULT_BIN_DIR,
    DEFAULT_COMPOSE_URL,
    DEFAULT_DATA_ROOT,
    DEFAULT_ENV_TEMPLATE_URL,
    DEFAULT_INSTALL_ROOT,
    DEFAULT_NAME,
    DEFAULT_SCRIPT_URL,
    DeploymentIdentity,
)

APP_NAME = "serhas"
CONFIG_FILENAME = "config.toml"
ENV_CONFIG_PATH = "SERHAS_CONFIG"
ENV_SCRIPT_URL = "SERHAS_SCRIPT_URL"
ENV_COMPOSE_URL = "SERHAS_COMPOSE_URL"
ENV_ENV_TEMPLATE_URL = "SERHAS_ENV_TEMPLATE_URL"

_URL_ENV_OVERRIDES = {
    "script_url": ENV_SCRIPT_URL,
    "compose_url": ENV_COMPOSE_URL,
    "env_template_url": ENV_ENV_TEMPLATE_URL,
}


class ConfigError(ValueError):
    pass


@dataclass
class ManagerConfig:
    name: str = DEFAULT_NAME
    display_name: str = ""
    service: str = ""
    cli_program: str = ""
    script_url: str = DEFAULT_SCRIPT_URL
    compose_url: str = DEFAULT_COMPOSE_URL
    env_template_url: str = DEFAULT_ENV_TEMPLATE_URL
    install_root: str = DEFAULT_INSTALL_ROOT
    data_root: str = DEFAULT_DATA_ROOT
    bin_dir: str = DEFAULT_BIN_DIR
    editor: str = ""


CONFIG_KEYS = tuple(f.name for f in fields(ManagerConfig))


def config_path() -> str:
    override = os.getenv(ENV_CONFIG_PATH, "").strip()
    if override:
        return override
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def default_config() -> ManagerConfig:
    return ManagerConfig()


def to_toml(cfg: ManagerConfig) -> dict[str, Any]:
    # an empty script_url is meaningful (disables self-install), so keep empty values
    return asdict(cfg)


def from_toml(data: dict[str, Any]) -> ManagerConfig:
    cfg = default_config()
    for key in CONFIG_KEYS:
        if key not in data:
            continue
        value = data.get(key)
        if value is None:
            continue
        setattr(cfg, key, str(value).strip())
    if not cfg.name:
        cfg.name = DEFAULT_NAME
    return cfg


def load_config() -> ManagerConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return default_config()
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc
    return from_toml(data)


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)


def save_config(cfg: ManagerConfig) -> str:
    path = config_path()
    ensure_parent_dir(path)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path


def set_value(cfg: ManagerConfig, key: str, value: str) -> ManagerConfig:
    if key not in CONFIG_KEYS:
        raise ConfigError(f"Unknown config key: {key}. Known keys: {', '.join(CONFIG_KEYS)}")
    value = (value or "").strip()
    if key == "name" and not value:
        raise ConfigError("name cannot be empty.")
    if key.endswith("_url") and value and not value.lower().startswith(("http://", "https://")):
        raise ConfigError(f"{key} must be an http(s) URL.")
    setattr(cfg, key, value)
    return cfg


def resolve_identity(cfg: ManagerConfig) -> DeploymentIdentity:
    urls = {}
    for key, env_name in _URL_ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        urls[key] = env_value.strip() if env_value is not None else getattr(cfg, key)
    return DeploymentIdentity(
        name=cfg.name or DEFAULT_NAME,
        display_name=cfg.display_name or None,
        service=cfg.service or None,
        cli_program=cfg.cli_program or None,
        script_url=urls["script_url"],
        compose_url=urls["compose_url"],
        env_template_url=urls["env_template_url"],
        install_root=cfg.install_root or DEFAULT_INSTALL_ROOT,
        data_root=cfg.data_root or DEFAULT_DATA_ROOT,
        bin_dir=cfg.bin_dir or DEFAULT_BIN_DIR,
        editor=cfg.editor or None,
    )
