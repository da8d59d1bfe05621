"""
Structured logging for vboxorm using structlog.

Library code only asks for loggers (``get_logger``) and scopes context
(``log_context``, ``log_operation``); nothing is printed until an
application calls ``configure_logging`` or ``VBoxSettings.configure_logging``.

Context bound by ``log_operation`` and ``log_context`` lives in contextvars,
so every event logged underneath it (per-key writes, VBoxManage invocations)
carries the VM and key it belongs to:

    with log_operation(log, "guest_property.save", vm="FooVM"):
        with log_context(key="/Foo/Bar"):
            vboxmanage.run([...])   # vboxmanage.run event has vm= and key=
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bound_contextvars

_SHARED_PROCESSORS = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
)


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=list(_SHARED_PROCESSORS),
    )


def _console_renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> None:
    """
    Route vboxorm's structlog events through the stdlib root logger.

    Args:
        level: DEBUG shows every VBoxManage command; INFO shows saves and deletes
        json_output: Render stderr output as JSON lines
        log_file: Also append JSON lines to this file
        console_output: Write to stderr
    """
    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers = []
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter(_console_renderer(json_output)))
        handlers.append(console_handler)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            _formatter(structlog.processors.JSONRenderer(sort_keys=True))
        )
        handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True,
    )


def get_logger(name: str = "vboxorm") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def log_context(**context) -> Iterator[None]:
    """Attach ``context`` to every event logged inside the block, in any module."""
    with bound_contextvars(**context):
        yield


@contextmanager
def log_operation(
    logger: structlog.stdlib.BoundLogger, operation: str, **context
) -> Iterator[structlog.stdlib.BoundLogger]:
    """
    Log ``<operation>.started``/``.completed``/``.failed`` around a block.

    ``context`` (typically ``vm=``) is bound for the whole block, so events
    from nested calls carry it too. Exceptions are logged and re-raised.
    """
    with bound_contextvars(**context):
        log = logger.bind(operation=operation)
        start = time.monotonic()
        log.debug(f"{operation}.started")
        try:
            yield log
        except Exception as e:
            log.error(
                f"{operation}.failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise
        log.info(
            f"{operation}.completed",
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
