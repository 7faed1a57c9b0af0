from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterator

import typer
from rich.markup import escape

from serhas_deploy import DeployError, LifecycleController, ServiceState

from .. import console
from ..config import ConfigError, load_config, resolve_identity


def _controller() -> LifecycleController:
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.err(str(exc))
        raise typer.Exit(code=1)
    return LifecycleController(resolve_identity(cfg), reporter=console.ConsoleReporter())


@contextmanager
def _guarded() -> Iterator[None]:
    try:
        yield
    except DeployError as exc:
        console.err(str(exc))
        raise typer.Exit(code=1)


def _prompt_confirm(prompt: str) -> str:
    return typer.prompt(prompt, default="", show_default=False)


def install(
    no_follow: bool = typer.Option(False, "--no-follow", help="Do not stream service logs after install."),
) -> None:
    """Install the service and start it."""
    ctl = _controller()
    console.rule(f"[bold]{escape(ctl.title)} install[/]")
    with _guarded():
        ctl.install(follow_logs=not no_follow)


def update(
    no_follow: bool = typer.Option(False, "--no-follow", help="Do not stream service logs after update."),
) -> None:
    """Update the manager and the service images to the latest version."""
    ctl = _controller()
    with _guarded():
        ctl.update(follow_logs=not no_follow)


def uninstall(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Stop the service and remove its configuration, data, images and the manager itself."""
    ctl = _controller()
    confirm = (lambda _prompt: "y") if yes else _prompt_confirm
    with _guarded():
        ctl.uninstall(confirm)


def status(
    json_out: bool = typer.Option(False, "--json", help="Print status as JSON."),
) -> None:
    """Show whether the service is running."""
    ctl = _controller()
    with _guarded():
        state = ctl.status()
    if json_out:
        console.print_json(
            {
                "name": ctl.identity.name,
                "installed": True,
                "state": state.value,
                "config_dir": str(ctl.layout.config_dir),
            }
        )
        return
    if state is ServiceState.RUNNING:
        console.ok(f"{ctl.title} is running.")
    else:
        console.warn(f"{ctl.title} is not running.")


def start() -> None:
    """Start the service."""
    ctl = _controller()
    with _guarded():
        ctl.start()


def stop() -> None:
    """Stop the service."""
    ctl = _controller()
    with _guarded():
        ctl.stop()


def restart() -> None:
    """Restart the service (starts it if stopped)."""
    ctl = _controller()
    with _guarded():
        ctl.restart()


def logs() -> None:
    """Follow service logs until interrupted."""
    ctl = _controller()
    with _guarded():
        code = ctl.logs()
    if code:
        raise typer.Exit(code=code)


def env() -> None:
    """Edit the service environment file."""
    ctl = _controller()
    with _guarded():
        code = ctl.edit_env()
    if code:
        raise typer.Exit(code=code)


def cli(ctx: typer.Context) -> None:
    """Run the in-container CLI; all arguments are passed through unchanged."""
    ctl = _controller()
    with _guarded():
        code = ctl.cli(list(ctx.args), tty=sys.stdin.isatty())
    if code:
        raise typer.Exit(code=code)


CLI_CONTEXT_SETTINGS = {
    "allow_extra_args": True,
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
}
