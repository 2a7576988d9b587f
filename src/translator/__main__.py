"""Serve the translation assistant with uvicorn (``python -m translator``)."""
from __future__ import annotations

import logging

import uvicorn

from translator.config import _env_int, _env_str

LOGGER = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def main() -> None:
    host = _env_str("TRANSLATOR_HOST", DEFAULT_HOST)
    port = _env_int("TRANSLATOR_PORT", DEFAULT_PORT)
    LOGGER.info("Serving translator API on %s:%s", host, port)
    # Logging is configured when the app module is imported.
    uvicorn.run("translator.main:app", host=host, port=port, reload=False, log_config=None)


if __name__ == "__main__":
    main()
