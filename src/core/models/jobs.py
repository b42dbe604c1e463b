"""
Job status models.

Mirrors the job status messages emitted by the backend. Every model can be
built from and converted back to the JSON wire format (camelCase keys).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from src.core.utils.time import format_timestamp, parse_timestamp


class JobPhase(StrEnum):
    """Coarse lifecycle phase of a job."""

    UNKNOWN = "unknown"
    WAITING = "waiting"
    PREPARING = "preparing"
    STARTING = "starting"
    RUNNING = "running"
    DONE = "done"
    CLEANUP = "cleanup"

    @classmethod
    def parse(cls, value: Any) -> "JobPhase":
        """Parse a wire value ("running", "PHASE_RUNNING"); unknown values map to UNKNOWN."""
        if isinstance(value, JobPhase):
            return value
        text = str(value or "").lower().removeprefix("phase_")
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


class JobTrigger(StrEnum):
    """What caused a job to start."""

    UNKNOWN = "unknown"
    MANUAL = "manual"
    PUSH = "push"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value: Any) -> "JobTrigger":
        """Parse a wire value; unknown values map to UNKNOWN."""
        if isinstance(value, JobTrigger):
            return value
        text = str(value or "").lower().removeprefix("trigger_")
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Repository:
    """Source repository a job runs against."""

    host: str = ""
    owner: str = ""
    repo: str = ""
    ref: str = ""
    revision: str = ""

    @property
    def label(self) -> str:
        """host/owner/repo, as shown next to a branch."""
        return f"{self.host}/{self.owner}/{self.repo}"

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "Repository":
        d = d or {}
        return cls(
            host=d.get("host", "") or "",
            owner=d.get("owner", "") or "",
            repo=d.get("repo", "") or "",
            ref=d.get("ref", "") or "",
            revision=d.get("revision", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "owner": self.owner,
            "repo": self.repo,
            "ref": self.ref,
            "revision": self.revision,
        }


@dataclass
class JobConditions:
    """Outcome flags of a job. A failed job is data, not an error."""

    success: bool = False
    failure_count: int = 0
    can_replay: bool = False
    wait_until: datetime | None = None
    did_execute: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "JobConditions":
        d = d or {}
        return cls(
            success=bool(d.get("success", False)),
            failure_count=int(d.get("failureCount", 0) or 0),
            can_replay=bool(d.get("canReplay", False)),
            wait_until=parse_timestamp(d.get("waitUntil")),
            did_execute=bool(d.get("didExecute", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failureCount": self.failure_count,
            "canReplay": self.can_replay,
            "waitUntil": format_timestamp(self.wait_until),
            "didExecute": self.did_execute,
        }


@dataclass
class JobResult:
    """A result artifact published by a job."""

    type: str
    payload: str
    description: str = ""
    channels: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "JobResult":
        return cls(
            type=d.get("type", "") or "",
            payload=d.get("payload", "") or "",
            description=d.get("description", "") or "",
            channels=list(d.get("channels", []) or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "payload": self.payload,
            "description": self.description,
            "channels": list(self.channels),
        }


@dataclass
class JobSummary:
    """
    Status of a single job, keyed by its globally unique name.

    Updates always replace the whole record; fields are never merged.
    """

    name: str
    owner: str = ""
    repository: Repository = field(default_factory=Repository)
    trigger: JobTrigger = JobTrigger.UNKNOWN
    phase: JobPhase = JobPhase.UNKNOWN
    conditions: JobConditions = field(default_factory=JobConditions)
    created: datetime | None = None
    finished: datetime | None = None
    results: list[JobResult] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)
    details: str = ""

    @property
    def is_done(self) -> bool:
        """True once the job reached its final phase."""
        return self.phase == JobPhase.DONE

    @property
    def name_suffix(self) -> str:
        """Part of the name after the last '.', e.g. "12" for "werft-main.12"."""
        return self.name.rsplit(".", 1)[-1]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "JobSummary":
        """
        Build a summary from its wire representation.

        Accepts both the nested form ({"metadata": {...}}) used by the
        backend and the flat form produced by to_dict().
        """
        metadata = d.get("metadata") or d
        annotations = metadata.get("annotations", {}) or {}
        if isinstance(annotations, list):
            annotations = {a.get("key", ""): a.get("value", "") for a in annotations}

        return cls(
            name=d.get("name", "") or "",
            owner=metadata.get("owner", "") or "",
            repository=Repository.from_dict(metadata.get("repository")),
            trigger=JobTrigger.parse(metadata.get("trigger")),
            phase=JobPhase.parse(d.get("phase")),
            conditions=JobConditions.from_dict(d.get("conditions")),
            created=parse_timestamp(metadata.get("created")),
            finished=parse_timestamp(metadata.get("finished")),
            results=[JobResult.from_dict(r) for r in d.get("results", []) or []],
            annotations=dict(annotations),
            details=d.get("details", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "metadata": {
                "owner": self.owner,
                "repository": self.repository.to_dict(),
                "trigger": str(self.trigger),
                "created": format_timestamp(self.created),
                "finished": format_timestamp(self.finished),
                "annotations": dict(self.annotations),
            },
            "phase": str(self.phase),
            "conditions": self.conditions.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"<JobSummary(name='{self.name}', phase='{self.phase}')>"


@dataclass
class ListJobsResult:
    """One page of a job listing."""

    total: int
    results: list[JobSummary] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ListJobsResult":
        return cls(
            total=int(d.get("total", 0) or 0),
            results=[JobSummary.from_dict(r) for r in d.get("result", d.get("results", [])) or []],
        )
