"""CLI entry point for the Ordefy webhook API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="ordefy-server",
        description="Ordefy webhook API server with the embedded queue worker",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, in-memory rate limits, console logs",
    )
    parser.add_argument(
        "--no-worker",
        action="store_true",
        help="Only receive webhooks; run ordefy-worker separately to process them",
    )
    args = parser.parse_args(argv)

    if args.local:
        os.environ["ORDEFY_LOCAL_MODE"] = "1"
    if args.no_worker:
        os.environ["ORDEFY_WORKER_ENABLED"] = "0"

    import uvicorn

    uvicorn.run("ordefy.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
