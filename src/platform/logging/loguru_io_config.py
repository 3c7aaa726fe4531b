"""
Loguru sinks for the hold & chat service.

Every line carries the service context and, for @Logger.io calls, the call target and
the elapsed time of the call chain. Standard `logging` (uvicorn, httpx, sse-starlette)
is routed through the same sinks.
"""

from contextvars import ContextVar
from datetime import datetime, timezone
from enum import StrEnum
import logging
import os
from pathlib import Path
import sys
from typing import TYPE_CHECKING

from loguru import logger as loguru_logger


if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger

from src.platform.config.core_setting import settings
from src.platform.logging.service_context import get_service_context


# Keys whose values never reach a log line (JWTs arrive as headers and cookies)
SENSITIVE_KEYWORDS = frozenset({'password', 'token', 'secret', 'authorization', 'cookie'})

chain_start_time_var: ContextVar[float] = ContextVar('chain_start_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)

# Library loggers that are only noise below WARNING
QUIET_LOGGERS = ('httpx', 'httpcore', 'sse_starlette', 'asyncio')


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'


def _default_extra() -> dict[str, str]:
    return {
        ExtraField.SERVICE_CONTEXT: get_service_context(),
        ExtraField.CHAIN_START_TIME: '',
        ExtraField.CALL_TARGET: '',
    }


def access_log_level(message: str) -> str | None:
    """
    Loguru level for a uvicorn access line, from its status code

    '127.0.0.1:52144 - "POST /api/lease HTTP/1.1" 409' -> 'ERROR'
    """
    if ' HTTP/' not in message or message.count('"') < 2:
        return None
    tail = message.rsplit('"', 1)[1].split()
    if not tail or not tail[0].isdigit():
        return None

    status_code = int(tail[0])
    if status_code >= 500:
        return 'CRITICAL'
    if status_code >= 400:
        return 'ERROR'
    if status_code >= 300:
        return 'WARNING'
    return 'SUCCESS'


class InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru, keeping the original caller location"""

    _bound: 'LoguruLogger | None' = None

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        # pytest-bdd logs every step pattern it tries
        if record.levelno <= logging.DEBUG and 'format ' in message and ' -> ' in message:
            return

        level: str | int | None = access_log_level(message)
        if level is None:
            try:
                level = loguru_logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        if InterceptHandler._bound is None:
            InterceptHandler._bound = loguru_logger.bind(**_default_extra())
        InterceptHandler._bound.opt(depth=depth, exception=record.exc_info).log(level, message)


io_log_format = ' | '.join(
    (
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        '<lk>{elapsed}</>',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)


def _log_file() -> Path:
    # Tests write next to the test tree so runs can be diffed
    test_log_dir = os.environ.get('TEST_LOG_DIR')
    stamp = datetime.now(timezone.utc).strftime('%Y-%m-%d_%H')
    if test_log_dir:
        return Path(test_log_dir) / f'test_{stamp}.log'
    return settings.LOG_DIR / f'{stamp}.log'


loguru_logger.remove()
custom_logger = loguru_logger.bind(**_default_extra())

min_log_level = 'DEBUG' if settings.DEBUG else 'INFO'

if settings.LOG_JSON:
    custom_logger.add(sys.stdout, serialize=True, level=min_log_level, enqueue=True)
else:
    custom_logger.add(sys.stdout, format=io_log_format, level=min_log_level, enqueue=True)

# Rotating file only while debugging, deployed instances log to stdout
if settings.DEBUG:
    custom_logger.add(
        str(_log_file()),
        format=io_log_format,
        rotation='1 hour',
        retention='7 days',
        compression='gz',
        enqueue=True,
        level=min_log_level,
    )

logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
for name in QUIET_LOGGERS:
    logging.getLogger(name).setLevel(logging.WARNING)
