"""Command line entry point: run the storefront as an MCP tool server or as a REST API."""

import argparse
import asyncio
import os

from .config import DEFAULT_BACKEND_URL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stationery-hub-server",
        description=(
            "Serve the stationery hub storefront (catalog, cart, checkout, blog) and "
            "its admin dashboard, backed by the stationery hub REST backend."
        ),
    )
    parser.add_argument(
        "--mode",
        choices=["stdio", "http"],
        default="stdio",
        help="stdio: MCP tools for an assistant client; http: storefront and admin routes",
    )
    parser.add_argument(
        "--backend-url",
        help=f"Backend origin (overrides STATIONERY_BACKEND_URL, default: {DEFAULT_BACKEND_URL})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (overrides STATIONERY_LOG_LEVEL, default: INFO)",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface the REST API listens on (http mode, default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port the REST API listens on (http mode, default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the REST API when package sources change (http mode, for development)",
    )
    return parser


def main(argv=None) -> None:
    """Parse arguments and start the selected server."""
    args = build_parser().parse_args(argv)

    # Both servers read their settings from the environment
    if args.backend_url:
        os.environ["STATIONERY_BACKEND_URL"] = args.backend_url
    if args.log_level:
        os.environ["STATIONERY_LOG_LEVEL"] = args.log_level

    if args.mode == "http":
        from .http_server import run_http_server
        run_http_server(host=args.host, port=args.port, reload=args.reload)
    else:
        from .server import main as server_main
        asyncio.run(server_main())


if __name__ == "__main__":
    main()
