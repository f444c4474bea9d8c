"""
Command line entry point for the exam grading service.

Usage:
    examgrader serve --port 8000
    examgrader init-db
    examgrader providers
"""

import sys
import argparse

from rich.console import Console
from rich.table import Table

from examgrader.config.settings import get_settings


def command_serve(args):
    """Start the API server."""
    import uvicorn

    from examgrader.api.app import create_app

    console = Console()
    app = create_app()

    console.print("[bold green]Starting exam grader API[/bold green]")
    console.print(f"Host: {args.host}")
    console.print(f"Port: {args.port}")
    console.print(f"Docs: http://{args.host}:{args.port}/docs")

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def command_init_db(args):
    """Create database tables."""
    from examgrader.db import init_db

    console = Console()
    init_db()
    console.print(f"[green]Database ready:[/green] {get_settings().database_url}")
    return 0


def command_providers(args):
    """Show scoring providers and which one is configured."""
    from examgrader.ai.provider_factory import get_available_providers

    console = Console()
    settings = get_settings()

    table = Table(title="Scoring providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Active")
    for name in get_available_providers():
        table.add_row(name, "[green]yes[/green]" if name == settings.scoring_provider else "")

    console.print(table)
    console.print(
        f"Timeout {settings.scoring_timeout_seconds:g}s, "
        f"{settings.scoring_max_attempts} attempt(s), "
        f"concurrency {settings.scoring_concurrency}"
    )
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Exam grader - grading pipeline for exam attempts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8000
  %(prog)s init-db
  %(prog)s providers

Configuration comes from EXAMGRADER_* environment variables or a .env file.
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to"
    )

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("providers", help="List scoring providers")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "serve": command_serve,
        "init-db": command_init_db,
        "providers": command_providers,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
