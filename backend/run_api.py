#!/usr/bin/env python
"""
Serve the Stickerlab API with uvicorn.

Host, port, reload and the ASGI app path default to the HOST, PORT,
RELOAD and APP_MODULE settings; command-line flags override them.

Usage:
    python run_api.py
    python run_api.py --reload --port 8080
"""

import argparse

import uvicorn
from rich.console import Console

from shared.config import Settings, get_settings

console = Console()


def parse_args(settings: Settings, argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=f"Run the {settings.app_name} server")
    parser.add_argument("--reload", action="store_true", default=settings.reload,
                        help="Restart on code changes")
    parser.add_argument("--host", default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind")
    parser.add_argument("--app", default=settings.app_module,
                        help="ASGI app import string (module:attribute)")
    return parser.parse_args(argv)


def main(argv=None):
    settings = get_settings()
    args = parse_args(settings, argv)

    console.print(
        f"[bold]{settings.app_name}[/bold] v{settings.app_version} "
        f"serving [cyan]{args.app}[/cyan] on http://{args.host}:{args.port}"
        + (" [yellow](reload)[/yellow]" if args.reload else "")
    )
    uvicorn.run(
        args.app,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
