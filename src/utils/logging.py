"""Structured logging for the continuity pipeline.

structlog renders both structlog and stdlib records. Film builds and shot
renders bind their identifiers with ``build_context`` so every line logged
inside one of them, from any module, carries ``build_id``.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog

# Third-party loggers held at WARNING; fal_client logs every queue poll
QUIET_LOGGERS = ("httpx", "httpcore", "fal_client", "asyncio")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR; anything else means INFO
        json_output: One JSON object per line instead of colored console text
    """
    shared = _shared_processors()
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def build_context(build_id: str, **fields) -> Iterator[str]:
    """Tag log lines inside the block with ``build_id`` and any extra fields.

    Nested blocks override the outer values and restore them on exit.
    """
    with structlog.contextvars.bound_contextvars(build_id=build_id, **fields):
        yield build_id
