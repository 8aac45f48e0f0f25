"""
Logging utilities for the FastAPI application and credential services.

Provides a consistent logging format and configuration.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a pipe-delimited format on stdout."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # botocore DEBUG output includes request bodies with stored ciphertexts.
    logging.getLogger("botocore").setLevel(logging.INFO)


__all__ = ["configure_logging"]
