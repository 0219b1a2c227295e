"""
Audit logging for the HostPay gateway.

Entries go through structlog so they come out as key/value events alongside
the rest of the Django logs. Debug entries are dropped unless HOSTPAY_DEBUG
is on.
"""
import logging
from typing import Any, Optional

import structlog

from . import conf

SOURCE = 'hostpay-mpesa'

LEVELS = ('debug', 'info', 'warning', 'error', 'critical')


def configure_logging() -> None:
    """Route structlog through the standard library loggers Django configures."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=['timestamp', 'level', 'event']),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.getLogger('urllib3').setLevel(logging.WARNING)


class AuditLogger:
    def __init__(self, debug: Optional[bool] = None, logger: Any = None):
        self.debug_enabled = conf.debug_enabled() if debug is None else debug
        self.logger = logger or structlog.get_logger('payments.audit').bind(source=SOURCE)

    def log(self, message: str, data: Any = None, level: str = 'info') -> None:
        if level == 'debug' and not self.debug_enabled:
            return
        if level not in LEVELS:
            level = 'info'
        fields = {}
        if data is not None:
            fields['data'] = data
        getattr(self.logger, level)(message, **fields)

    def debug(self, message: str, data: Any = None) -> None:
        self.log(message, data, 'debug')

    def info(self, message: str, data: Any = None) -> None:
        self.log(message, data, 'info')

    def warning(self, message: str, data: Any = None) -> None:
        self.log(message, data, 'warning')

    def error(self, message: str, data: Any = None) -> None:
        self.log(message, data, 'error')
