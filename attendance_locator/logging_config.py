import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional
import os

# LogRecord attributes that are not user-supplied context
_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'message', 'asctime',
))

# Context fields promoted to top-level keys instead of "extra"
_CONTEXT_FIELDS = ('provider', 'coordinates', 'quality_score', 'response_time_ms', 'cache_tier')


class StructuredJSONFormatter(logging.Formatter):
    """Formatter for structured JSON logging, one object per line"""

    def __init__(self, service_name: str = "attendance-locator"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.environ.get('HOSTNAME', 'localhost')

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "service": self.service_name,
            "hostname": self.hostname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in _CONTEXT_FIELDS or key.startswith('_'):
                continue
            log_entry.setdefault("extra", {})[key] = value

        return json.dumps(log_entry, default=str, separators=(',', ':'))


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)8s | %(name)30s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    level: str = "INFO",
    use_json: Optional[bool] = None,
    service_name: str = "attendance-locator"
) -> None:
    """Setup logging configuration for the location service"""

    if use_json is None:
        use_json = (
            os.environ.get('APP_ENV') == 'production' or
            os.environ.get('LOG_FORMAT', '').lower() == 'json'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    if use_json:
        console_handler.setFormatter(StructuredJSONFormatter(service_name))
    else:
        console_handler.setFormatter(DevelopmentFormatter())
    root_logger.addHandler(console_handler)

    configure_locator_loggers(level)

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging configured",
        extra={
            "log_format": "json" if use_json else "development",
            "log_level": level,
            "service": service_name
        }
    )


def configure_locator_loggers(level: str) -> None:
    """Configure package loggers and quiet noisy third-party ones"""
    logging.getLogger('attendance_locator').setLevel(getattr(logging, level.upper()))

    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


def get_provider_logger(provider: str, lat: float, lng: float) -> logging.LoggerAdapter:
    """Get logger that tags every record with provider and query coordinates"""
    logger = logging.getLogger('attendance_locator.providers')

    class ContextAdapter(logging.LoggerAdapter):
        def process(self, msg, kwargs):
            extra = kwargs.get('extra', {})
            extra.update({
                'provider': provider,
                'coordinates': {'lat': lat, 'lng': lng},
            })
            kwargs['extra'] = extra
            return msg, kwargs

    return ContextAdapter(logger, {})
