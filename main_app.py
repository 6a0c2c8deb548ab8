"""
BB84 QKD Simulator — Entry Point
=================================
Run this file to launch the backend the browser front end talks to:

    python main_app.py
"""
import logging

import uvicorn

from backend.config import HOST, LOG_LEVEL, PORT


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("backend.main:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
