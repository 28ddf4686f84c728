import os
import logging
import json

# Attributes every LogRecord carries; anything else arrived through `extra`
STANDARD_RECORD_ATTRIBUTES = {
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'id', 'levelname', 'levelno', 'lineno', 'module',
    'msecs', 'message', 'msg', 'name', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'taskName',
    'thread', 'threadName'
}


def setup_logging(level=None):
    """
    Set up logging, switching to JSON formatting when running inside AWS.

    Args:
        level: Optional log level override (default: uses LOG_LEVEL env var or INFO)
    """
    if level is None:
        level = os.environ.get('LOG_LEVEL', 'INFO')

    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    # force=True because the Lambda runtime installs its own handler first
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s [%(levelname)s] %(threadName)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        force=True
    )

    if os.environ.get('AWS_EXECUTION_ENV') is not None:
        root_logger = logging.getLogger()
        for handler in root_logger.handlers:
            handler.setFormatter(JsonFormatter())

    # Silence noisy loggers
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    logging.debug("Logging initialized")


class JsonFormatter(logging.Formatter):
    """
    Format logs as JSON for CloudWatch Logs Insights.
    """

    def format(self, record):
        log_record = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'name': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
            'file': record.pathname,
            'line': record.lineno,
            'function': record.funcName
        }

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in STANDARD_RECORD_ATTRIBUTES:
                log_record[key] = value

        return json.dumps(log_record, default=str)
