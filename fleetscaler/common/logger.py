import os
import logging
import json

# Environment markers set by the managed runtimes the scaler is deployed on
MANAGED_RUNTIME_MARKERS = ('K_SERVICE', 'AWS_EXECUTION_ENV')

_STANDARD_ATTRS = {
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'id', 'levelname', 'levelno', 'lineno', 'module',
    'msecs', 'message', 'msg', 'name', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'thread', 'threadName',
    'taskName'
}


def use_json_logs() -> bool:
    if os.environ.get('LOG_FORMAT', '').lower() == 'json':
        return True
    return any(os.environ.get(marker) is not None for marker in MANAGED_RUNTIME_MARKERS)


def setup_logging(level=None):
    """
    Set up logging, with JSON formatting when running on Cloud Run or AWS.

    Args:
        level: Optional log level override (default: uses LOG_LEVEL env var or INFO)
    """
    # Get log level from environment or use default
    if level is None:
        level = os.environ.get('LOG_LEVEL', 'INFO')
    level = str(level).upper()

    # Convert string level to logging constant
    numeric_level = getattr(logging, level, logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s [%(levelname)s] %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    if use_json_logs():
        for handler in root_logger.handlers:
            handler.setFormatter(JsonFormatter())

    # Silence noisy loggers
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('google.auth').setLevel(logging.WARNING)

    logging.debug("Logging initialized")


class JsonFormatter(logging.Formatter):
    """
    Format logs as JSON so Cloud Logging and CloudWatch can index the fields.
    """

    def format(self, record):
        log_record = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'severity': record.levelname,
            'name': record.name,
            'message': record.getMessage(),
            'file': record.pathname,
            'line': record.lineno,
            'function': record.funcName
        }

        # Add exception info if present
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        # Add extra fields from record
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_record[key] = value

        return json.dumps(log_record, default=str)
