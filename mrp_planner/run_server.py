#!/usr/bin/env python3
"""
MRP planner server launcher.

    python -m mrp_planner.run_server
"""

import logging

import uvicorn

from mrp_planner.settings import Settings


def main() -> None:
    settings = Settings.get()
    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s: %(message)s")
    uvicorn.run(
        "mrp_planner.api:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
    )


if __name__ == "__main__":
    main()
