"""
Command-line entry point.

Loads .env, builds the app from the environment and serves it with uvicorn
on localhost. The session is local to this machine's microphone and speaker,
so the server binds to loopback by default.
"""

from __future__ import annotations

import argparse

import uvicorn
from dotenv import load_dotenv


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Local voice session server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    load_dotenv()

    # Imported after load_dotenv so AppConfig sees .env values.
    from config import AppConfig  # pylint: disable=import-outside-toplevel
    from server.app import create_app  # pylint: disable=import-outside-toplevel

    config = AppConfig.load_from_env()
    uvicorn.run(
        create_app(config),
        host=args.host,
        port=args.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
