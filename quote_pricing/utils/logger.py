"""Centralized logging configuration.
Call setup_logging() once at application startup; calling it again replaces
the engine's own handler, so a changed level or debug flag takes effect.
"""

from __future__ import annotations

import logging
import sys

HANDLER_NAME = "quote_pricing"

_QUOTE_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
_DEBUG_FORMAT = (
    "%(asctime)s.%(msecs)03d │ %(levelname)-8s │ %(name)s │ "
    "%(funcName)s:%(lineno)d │ %(message)s"
)


def setup_logging(level: str = "INFO", debug: bool = False) -> logging.Handler:
    """
    Attach the engine's stdout handler to the `quote_pricing` logger.

    debug=True forces DEBUG and adds call-site detail to each line, which is
    what you want when tracing a single quote through the pipeline.
    """
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("quote_pricing")
    for existing in list(package_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            package_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(
            fmt=_DEBUG_FORMAT if debug else _QUOTE_FORMAT,
            datefmt="%H:%M:%S",
        )
    )
    package_logger.addHandler(handler)
    package_logger.setLevel(resolved)

    # asyncio reports slow callbacks at DEBUG; only surface it when debugging
    logging.getLogger("asyncio").setLevel(logging.DEBUG if debug else logging.WARNING)
    return handler
