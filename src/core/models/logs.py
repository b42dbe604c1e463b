"""
Log slice models.

LogEvent is what arrives on a job's listen stream. Section and Phase are
derived by the reconstruction engine and never sent over the wire.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from src.core.models.jobs import JobSummary


class LogEventType(StrEnum):
    """Kind of log slice event."""

    PHASE = "phase"
    START = "start"
    CONTENT = "content"
    DONE = "done"
    FAIL = "fail"
    RESULT = "result"
    ABANDONED = "abandoned"


class SectionStatus(StrEnum):
    """Status of a reconstructed log section."""

    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    UNKNOWN = "unknown"


class ListenLogMode(StrEnum):
    """How the backend should deliver log output on a listen stream."""

    DISABLED = "disabled"
    UNSLICED = "unsliced"
    RAW = "raw"
    HTML = "html"


@dataclass(frozen=True)
class LogEvent:
    """
    A single log slice event.

    Events carry no sequence number or timestamp: arrival order is the
    only ordering signal. `type` is kept as a plain string when the wire
    value is not a known LogEventType so the engine can ignore it.
    """

    section_name: str
    type: LogEventType | str
    payload: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "LogEvent":
        raw_type = str(d.get("type", "")).lower().removeprefix("slice_")
        try:
            event_type: LogEventType | str = LogEventType(raw_type)
        except ValueError:
            event_type = raw_type
        return cls(
            section_name=d.get("name", "") or "",
            type=event_type,
            payload=d.get("payload", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.section_name, "type": str(self.type), "payload": self.payload}


@dataclass
class Phase:
    """A coarse stage of job execution, announced by a phase event."""

    name: str
    description: str = ""


@dataclass
class Section:
    """Named, independently statused block of log content within one phase."""

    phase: str
    name: str
    lines: list[str] = field(default_factory=list)
    status: SectionStatus = SectionStatus.RUNNING

    @property
    def key(self) -> tuple[str, str]:
        return (self.phase, self.name)

    @property
    def last_line(self) -> str | None:
        """Most recent content line, or None if the section is empty."""
        return self.lines[-1] if self.lines else None


@dataclass
class ListenMessage:
    """One message of a listen stream: either a status update or a log slice."""

    update: JobSummary | None = None
    slice: LogEvent | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ListenMessage":
        update = d.get("update")
        log_slice = d.get("slice")
        return cls(
            update=JobSummary.from_dict(update) if update else None,
            slice=LogEvent.from_dict(log_slice) if log_slice else None,
        )
