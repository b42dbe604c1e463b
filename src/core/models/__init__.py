"""
Data models for the job client runtime.

This module exports the wire models (jobs, filters, log events) and the
derived log tree types.
"""

from src.core.models.filters import (
    FilterExpression,
    FilterOp,
    FilterTerm,
    OrderExpression,
)
from src.core.models.jobs import (
    JobConditions,
    JobPhase,
    JobResult,
    JobSummary,
    JobTrigger,
    ListJobsResult,
    Repository,
)
from src.core.models.logs import (
    ListenLogMode,
    ListenMessage,
    LogEvent,
    LogEventType,
    Phase,
    Section,
    SectionStatus,
)

__all__ = [
    "FilterExpression",
    "FilterOp",
    "FilterTerm",
    "OrderExpression",
    "JobConditions",
    "JobPhase",
    "JobResult",
    "JobSummary",
    "JobTrigger",
    "ListJobsResult",
    "Repository",
    "ListenLogMode",
    "ListenMessage",
    "LogEvent",
    "LogEventType",
    "Phase",
    "Section",
    "SectionStatus",
]
