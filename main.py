"""
Booking service entry point.

Serves the FastAPI application with uvicorn, or runs the offline wizard
walkthrough for development.

Usage:
    API server:   python main.py serve [--host 0.0.0.0] [--port 8000]
    Console mode: python main.py console [--scenario booking|quotation]
"""

import argparse
import logging

from wabco_booking.config import settings

logger = logging.getLogger(__name__)


def _run_server(host: str, port: int, reload: bool) -> None:
    """Start the HTTP API (creates tables on startup)."""
    import uvicorn

    logger.info("Starting %s on %s:%d", settings.app_name, host, port)
    uvicorn.run(
        "wabco_booking.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode(scenario: str) -> None:
    """Start the offline console demo (no database or mail server required)."""
    from console_demo import ConsoleSession

    ConsoleSession().run_scenario(scenario)


def main() -> None:
    parser = argparse.ArgumentParser(description=f"{settings.business.name} booking service")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    console = sub.add_parser("console", help="Run the scripted wizard demo")
    console.add_argument("--scenario", choices=["booking", "quotation"], default="booking")

    args = parser.parse_args()
    if args.command == "console":
        _run_console_mode(args.scenario)
    else:
        _run_server(
            getattr(args, "host", "127.0.0.1"),
            getattr(args, "port", 8000),
            getattr(args, "reload", False),
        )


if __name__ == "__main__":
    main()
