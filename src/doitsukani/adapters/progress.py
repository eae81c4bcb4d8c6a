"""Progress sinks for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger

log = getLogger(__name__)


class LoggingProgressSink:
    """Report progress through the module logger."""

    def report(self, current: int, total: int, message: str) -> None:
        log.info("[%s/%s] %s", current, total, message)


@dataclass(slots=True)
class ProgressEvent:
    current: int
    total: int
    message: str


@dataclass(slots=True)
class RecordingProgressSink:
    """Keep every progress event in memory."""

    events: list[ProgressEvent] = field(default_factory=list["ProgressEvent"])

    def report(self, current: int, total: int, message: str) -> None:
        self.events.append(ProgressEvent(current=current, total=total, message=message))

    @property
    def last(self) -> ProgressEvent | None:
        return self.events[-1] if self.events else None
