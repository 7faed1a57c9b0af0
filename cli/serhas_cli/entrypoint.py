from __future__ import annotations

import sys


def selected_command(argv: list[str]) -> str | None:
    for token in argv:
        if not token.startswith("-"):
            return token
    return None


def main() -> None:
    from .main import COMMANDS, app

    # unknown or missing command: show usage and exit 0
    if selected_command(sys.argv[1:]) not in COMMANDS:
        sys.argv = [sys.argv[0], "--help"]
    app()


if __name__ == "__main__":
    main()
