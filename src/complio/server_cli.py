"""CLI entry point for the Complio API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="complio-server",
        description="Complio API server: compliance integrations and evidence automation",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, no Redis required",
    )
    parser.add_argument(
        "--no-orchestrator",
        action="store_true",
        help="Serve the API without running the sync polling loops",
    )
    args = parser.parse_args(argv)

    # Settings are read at import time, so the environment must be set first
    if args.local:
        os.environ["COMPLIO_LOCAL_MODE"] = "1"
    if args.no_orchestrator:
        os.environ["COMPLIO_ORCHESTRATOR_ENABLED"] = "0"

    import uvicorn

    uvicorn.run("complio.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
