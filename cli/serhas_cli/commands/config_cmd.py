from __future__ import annotations

import typer

from .. import console
from ..config import CONFIG_KEYS, ConfigError, config_path, load_config, resolve_identity, save_config, set_value

app = typer.Typer(help="Show or change manager configuration.")


def _load():
    try:
        return load_config()
    except ConfigError as exc:
        console.err(str(exc))
        raise typer.Exit(code=1)


@app.command("show", help="Print the effective configuration (file + environment overrides).")
def config_show() -> None:
    identity = resolve_identity(_load())
    layout = identity.layout()
    console.print_json(
        {
            "name": identity.name,
            "display_name": identity.title,
            "service": identity.service_name,
            "cli_program": identity.cli_program_path,
            "script_url": identity.script_url,
            "compose_url": identity.compose_url,
            "env_template_url": identity.env_template_url,
            "editor": identity.editor,
            "config_dir": str(layout.config_dir),
            "data_dir": str(layout.data_dir),
            "compose_file": str(layout.compose_file_path),
            "env_file": str(layout.env_file_path),
            "binary_path": str(layout.binary_path),
        }
    )


@app.command("path", help="Print the config file location.")
def config_show_path() -> None:
    console.print(config_path())


@app.command("set", help=f"Set a config value. Keys: {', '.join(CONFIG_KEYS)}.")
def config_set(
    key: str = typer.Argument(..., help="Config key."),
    value: str = typer.Argument(..., help="New value (empty string resets where allowed)."),
) -> None:
    cfg = _load()
    try:
        set_value(cfg, key, value)
    except ConfigError as exc:
        console.err(str(exc))
        raise typer.Exit(code=2)
    saved = save_config(cfg)
    console.ok(f"Config written: {saved}")
