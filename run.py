#!/usr/bin/env python3
"""
Run an example api-scaffold server.

Usage:
    SERVER_PORT=8080 python run.py                # /health, no CORS
    SERVER_PORT=8080 python run.py --cors         # permissive CORS
    SERVER_PORT=8080 python run.py --log-level debug
"""
import sys
import os
import argparse

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from api_scaffold import CorsPolicy, get, ok, start
from api_scaffold.core import setup_logging


async def health():
    """Liveness probe"""
    return ok({"status": "up"})


def main():
    parser = argparse.ArgumentParser(description="Run the example api-scaffold server")
    parser.add_argument("--cors", action="store_true", help="Enable a permissive CORS policy")
    parser.add_argument("--log-level", default="info", help="Log level (default: info)")
    args = parser.parse_args()

    setup_logging(args.log_level)
    start(
        [get("/health", health)],
        cors=CorsPolicy.permissive() if args.cors else None,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
