"""Log sanitization filter to prevent credential/PII leakage in logs.

Prompts and model responses are logged while plans are generated, and
they can carry profile data. Provider errors can echo request URLs and
headers. This filter redacts:
- Gemini and OpenAI API keys
- Bearer tokens and API key headers/query parameters
- Email addresses

Usage:
    from training_planner.utils.log_sanitizer import configure_logging

    # Configure levels and install the filter at application startup
    configure_logging()
"""

import logging
import re
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class LogSanitizationFilter(logging.Filter):
    """Logging filter that redacts sensitive information from log messages.

    This filter processes log records before they are emitted and redacts
    patterns that could expose credentials or PII.
    """

    # Patterns to redact with their replacement text
    # Order matters - more specific patterns should come before general ones
    PATTERNS: list[tuple[re.Pattern, str]] = [
        # Google API keys (AIza...)
        (re.compile(r'\bAIza[0-9A-Za-z_-]{35}'), '[REDACTED_GOOGLE_KEY]'),

        # OpenAI project keys (sk-proj-...) - must come before generic OpenAI pattern
        (re.compile(r'\bsk-proj-[a-zA-Z0-9_-]{20,}'), '[REDACTED_OPENAI_KEY]'),

        # OpenAI API keys (sk-...)
        (re.compile(r'\bsk-[a-zA-Z0-9]{20,}'), '[REDACTED_OPENAI_KEY]'),

        # Bearer tokens in Authorization headers
        (re.compile(r'Bearer\s+[a-zA-Z0-9_\-\.]+', re.IGNORECASE), 'Bearer [REDACTED_TOKEN]'),

        # Authorization header values (generic)
        (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        # Gemini key header
        (re.compile(r'(x-goog-api-key["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        # API key fields and query parameters (?key=...)
        (re.compile(r'(api_key["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(apikey["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'([?&]key=)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        # Email addresses
        (re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'), '[REDACTED_EMAIL]'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and sanitize the log record.

        Args:
            record: The log record to process.

        Returns:
            True to allow the record to be logged (after sanitization).
        """
        if record.msg:
            record.msg = self._sanitize(str(record.msg))

        if record.args:
            record.args = self._sanitize_args(record.args)

        return True

    def _sanitize(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _sanitize_args(self, args: Any) -> Any:
        """Recursively sanitize log arguments.

        Args:
            args: The arguments to sanitize (can be tuple, list, dict, or str).

        Returns:
            The sanitized arguments.
        """
        if isinstance(args, str):
            return self._sanitize(args)
        elif isinstance(args, tuple):
            return tuple(self._sanitize_args(arg) for arg in args)
        elif isinstance(args, list):
            return [self._sanitize_args(arg) for arg in args]
        elif isinstance(args, dict):
            return {k: self._sanitize_args(v) for k, v in args.items()}
        else:
            str_val = str(args)
            sanitized = self._sanitize(str_val)
            # Keep the original object unless something was redacted
            return sanitized if sanitized != str_val else args


def install_log_sanitizer(logger_name: Optional[str] = None) -> LogSanitizationFilter:
    """Install the log sanitization filter on loggers.

    Args:
        logger_name: If provided, install only on the named logger.
                    If None, install on the root logger and its handlers.

    Returns:
        The installed filter.
    """
    sanitizer = LogSanitizationFilter()

    if logger_name:
        logging.getLogger(logger_name).addFilter(sanitizer)
    else:
        root_logger = logging.getLogger()
        root_logger.addFilter(sanitizer)

        # Records from child loggers skip root filters but not root handlers
        for handler in root_logger.handlers:
            handler.addFilter(sanitizer)

    return sanitizer


def sanitize_string(text: str) -> str:
    """Sanitize a string without using the logging system.

    Args:
        text: The text to sanitize.

    Returns:
        The sanitized text with sensitive data redacted.
    """
    return LogSanitizationFilter()._sanitize(text)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging and install the sanitizer.

    Args:
        level: Log level name; defaults to the LOG_LEVEL setting.
    """
    if level is None:
        from ..config import get_settings

        level = get_settings().log_level

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())

    # Request lines from the HTTP clients are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    install_log_sanitizer()
