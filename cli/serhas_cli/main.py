from __future__ import annotations

import typer

from .commands import config_cmd, lifecycle_cmd
from .logging_ import setup_logging

LIFECYCLE_COMMANDS = ("install", "update", "uninstall", "status", "start", "stop", "restart", "logs", "env", "cli")
COMMANDS = (*LIFECYCLE_COMMANDS, "config")


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="serhas",
        help="Install and manage the serhas Docker Compose deployment.",
        no_args_is_help=False,
        add_completion=False,
    )

    app.command("install")(lifecycle_cmd.install)
    app.command("update")(lifecycle_cmd.update)
    app.command("uninstall")(lifecycle_cmd.uninstall)
    app.command("status")(lifecycle_cmd.status)
    app.command("start")(lifecycle_cmd.start)
    app.command("stop")(lifecycle_cmd.stop)
    app.command("restart")(lifecycle_cmd.restart)
    app.command("logs")(lifecycle_cmd.logs)
    app.command("env")(lifecycle_cmd.env)
    app.command(
        "cli",
        context_settings=lifecycle_cmd.CLI_CONTEXT_SETTINGS,
        add_help_option=False,
    )(lifecycle_cmd.cli)
    app.add_typer(config_cmd.app, name="config")

    @app.callback()
    def _main(
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
    ):
        setup_logging(verbose)

    return app


app = _build_app()
