import logging
from dataclasses import dataclass
from typing import List, Optional

from .logger import get_logger


@dataclass
class OccurrenceRejection:
    file_path: str
    line: int
    text: str
    reason: str
    error_type: str


class Reporter:
    """
    Explicit reporting channel handed to pool operations.

    Forwards messages to a logger and keeps the warnings and rejected
    occurrences so callers (CLI, GUI, tests) can inspect them afterwards.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("pool")
        self.warnings: List[str] = []
        self.rejected: List[OccurrenceRejection] = []

    def debug(self, message: str):
        self.logger.debug(message)

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.warnings.append(message)
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def reject(self, occurrence, error) -> OccurrenceRejection:
        rejection = OccurrenceRejection(
            file_path=occurrence.file_path,
            line=occurrence.line,
            text=occurrence.text,
            reason=str(error),
            error_type=getattr(error, "type", type(error).__name__),
        )
        self.rejected.append(rejection)
        self.logger.warning(
            f"Skipped occurrence at {occurrence.file_path}:{occurrence.line}: {error}"
        )
        return rejection


def resolve_reporter(reporter: Optional[Reporter]) -> Reporter:
    return reporter if reporter is not None else Reporter()
