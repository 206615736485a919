"""Serve the stage over HTTP: ``python -m blockstage``."""

import sys

from aiohttp import web

from blockstage.adapters.web import create_app
from blockstage.config import CONFIG


def main():
    host, port = CONFIG["host"], CONFIG["port"]
    print(f"[Web] serving on http://{host}:{port}", file=sys.stderr)
    web.run_app(create_app(), host=host, port=port, print=None)


if __name__ == "__main__":
    main()
