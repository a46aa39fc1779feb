"""
    Event-log sink for remediation outcomes.

    Every result becomes one log record: level from the result status,
    message made of the ordered log lines. Records always go to the console
    and the log file; on Windows they also go to the Application event log
    under the configured source.
"""
import logging
import logging.handlers

from core.logger_config import setup_logger
from core.models import RemediationResult
from shared.system import is_windows

STATUS_LEVELS = {
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Event IDs written to the Windows event log, one per remediation.
EVENT_IDS = {
    "machine-account-quota": 1001,
    "subnets": 1002,
    "password-policies": 1003,
}
DEFAULT_EVENT_ID = 1000


class _EventIdHandler(logging.handlers.NTEventLogHandler):
    """NTEventLogHandler that takes the event id from the record."""

    def getEventID(self, record):
        return getattr(record, "event_id", DEFAULT_EVENT_ID)


class EventLogSink:

    def __init__(self, source: str, log_file: str | None = None, level: int = logging.INFO):
        self.source = source
        self.log_file = log_file
        self.level = level
        self.logger: logging.Logger | None = None

    def initialize(self) -> logging.Logger:
        """Attach handlers once; registers the event source on Windows."""
        if self.logger is not None:
            return self.logger

        logger = setup_logger(f"adremediate.events.{self.source}", self.log_file, self.level)
        # Has its own handlers; don't echo through the application logger.
        logger.propagate = False
        if is_windows() and not any(isinstance(h, _EventIdHandler) for h in logger.handlers):
            # Registering a new source needs administrative rights; pywin32
            # reports failures on stderr rather than raising.
            logger.addHandler(_EventIdHandler(self.source, logtype="Application"))

        self.logger = logger
        return logger

    def write(self, result: RemediationResult) -> None:
        logger = self.initialize()
        message = "\n".join([f"{result.name}: {result.status}", *result.log])
        logger.log(
            STATUS_LEVELS[result.status],
            message,
            extra={"event_id": EVENT_IDS.get(result.id, DEFAULT_EVENT_ID)},
        )
