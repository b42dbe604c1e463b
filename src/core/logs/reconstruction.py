"""
Structured log reconstruction.

Turns the ordered log slice events of one job into a phase -> section
tree with a status per section, plus a flat raw log buffer.

Design Decisions:
    - Arrival order is the only ordering signal; events are applied
      strictly in the order they are fed.
    - Sections are keyed by (active phase, section name), so the same
      section name under two phases yields two sections.
    - Running sections left behind by a phase change become UNKNOWN: they
      may have finished without the completion being observed.
    - Bad input never raises. Unknown event types and references to
      sections that were never started only fail to update state.
"""

import logging
from collections.abc import Iterable, Sequence

from src.core.config.loader import DEFAULT_INTERNAL_PREFIXES
from src.core.models import LogEvent, LogEventType, Phase, Section, SectionStatus

logger = logging.getLogger(__name__)

# Phase that owns everything logged before the first phase event
DEFAULT_PHASE = "default"


class LogReconstructor:
    """
    Phase/section state machine for a single job's log stream.

    Attributes:
        active_phase: Name of the phase new sections are opened under.
        internal_prefixes: Raw lines starting with one of these are
            status chatter and hidden from the raw view by default.

    Example:
        >>> engine = LogReconstructor()
        >>> engine.apply(LogEvent("build", LogEventType.PHASE, "Build"))
        >>> engine.apply(LogEvent("compile", LogEventType.START))
        >>> engine.apply(LogEvent("compile", LogEventType.CONTENT, "ok"))
        >>> engine.sections("build")[0].lines
        ['ok']
    """

    def __init__(self, internal_prefixes: Sequence[str] | None = None) -> None:
        self.internal_prefixes = tuple(
            DEFAULT_INTERNAL_PREFIXES if internal_prefixes is None else internal_prefixes
        )
        self.reset()

    def reset(self) -> None:
        """Forget all phases, sections and raw lines."""
        self.active_phase = DEFAULT_PHASE
        self._phases: dict[str, Phase] = {}
        self._sections: dict[tuple[str, str], Section] = {}
        self._raw: list[str] = []
        self.events_applied = 0

    def rebuild(self, events: Iterable[LogEvent]) -> None:
        """Reset and re-derive the whole tree from an event history."""
        self.reset()
        self.apply_all(events)

    @classmethod
    def from_events(
        cls,
        events: Iterable[LogEvent],
        internal_prefixes: Sequence[str] | None = None,
    ) -> "LogReconstructor":
        engine = cls(internal_prefixes)
        engine.apply_all(events)
        return engine

    def apply_all(self, events: Iterable[LogEvent]) -> None:
        for event in events:
            self.apply(event)

    def apply(self, event: LogEvent, record_raw: bool = True) -> None:
        """
        Apply a single event. Never raises on malformed input.

        With record_raw=False, content only goes to its section and the raw
        buffer is left to append_raw().
        """
        self.events_applied += 1
        name = event.section_name
        event_type = event.type

        if event_type == LogEventType.PHASE:
            self._enter_phase(name, event.payload)
        elif event_type == LogEventType.START:
            self._sections[(self.active_phase, name)] = Section(
                phase=self.active_phase, name=name
            )
        elif event_type == LogEventType.CONTENT:
            if record_raw:
                self._raw.append(event.payload)
            section = self._sections.get((self.active_phase, name))
            if section is not None:
                section.lines.append(event.payload)
        elif event_type == LogEventType.DONE:
            self._set_status(name, SectionStatus.DONE)
        elif event_type == LogEventType.FAIL:
            self._set_status(name, SectionStatus.FAILED)
        else:
            logger.debug(f"Ignoring log event of type {event_type!r} for {name!r}")

    def append_raw(self, line: str) -> None:
        """Record a raw output line as received, without touching the tree."""
        self._raw.append(line)

    def _enter_phase(self, name: str, description: str) -> None:
        if name in self._phases:
            self.active_phase = name
            return

        previous = self.active_phase
        self._phases[name] = Phase(name=name, description=description)
        for section in self._sections.values():
            if section.phase == previous and section.status == SectionStatus.RUNNING:
                section.status = SectionStatus.UNKNOWN
        self.active_phase = name

    def _set_status(self, name: str, status: SectionStatus) -> None:
        section = self._sections.get((self.active_phase, name))
        if section is None:
            logger.debug(f"Status {status} for unknown section {name!r} dropped")
            return
        section.status = status

    # -- read side ---------------------------------------------------------

    @property
    def phases(self) -> list[Phase]:
        """Phases in first-seen order."""
        return list(self._phases.values())

    @property
    def active_step(self) -> int:
        """Number of distinct phases seen so far."""
        return len(self._phases)

    def phase(self, name: str) -> Phase | None:
        return self._phases.get(name)

    def sections(self, phase: str | None = None) -> list[Section]:
        """Sections in creation order, optionally limited to one phase."""
        if phase is None:
            return list(self._sections.values())
        return [s for s in self._sections.values() if s.phase == phase]

    def section(self, phase: str, name: str) -> Section | None:
        return self._sections.get((phase, name))

    def tree(self) -> list[tuple[Phase, list[Section]]]:
        """
        Phase -> sections, ordered by phase arrival.

        The default phase is listed first, and only when it holds sections.
        """
        result: list[tuple[Phase, list[Section]]] = []
        default_sections = self.sections(DEFAULT_PHASE)
        if default_sections and DEFAULT_PHASE not in self._phases:
            result.append((Phase(name=DEFAULT_PHASE), default_sections))
        for phase in self._phases.values():
            result.append((phase, self.sections(phase.name)))
        return result

    def summary_lines(self) -> dict[tuple[str, str], str]:
        """Most recent line of every running or failed section."""
        return {
            section.key: section.last_line
            for section in self._sections.values()
            if section.status in (SectionStatus.RUNNING, SectionStatus.FAILED)
            and section.last_line is not None
        }

    def is_internal(self, line: str) -> bool:
        return line.startswith(self.internal_prefixes)

    def raw_lines(self, show_internal: bool = False) -> list[str]:
        """All content payloads in arrival order."""
        if show_internal:
            return list(self._raw)
        return [line for line in self._raw if not self.is_internal(line)]

    def raw_log(self, show_internal: bool = False) -> str:
        return "\n".join(self.raw_lines(show_internal))

    def export(self, show_internal: bool = True) -> str:
        """Raw log as downloadable text, newline terminated."""
        lines = self.raw_lines(show_internal)
        if not lines:
            return ""
        return "\n".join(line.rstrip("\n") for line in lines) + "\n"

    def snapshot(self) -> list[tuple[str, str, str, tuple[str, ...]]]:
        """Comparable, immutable view of the tree: (phase, name, status, lines)."""
        return [
            (s.phase, s.name, str(s.status), tuple(s.lines))
            for s in self._sections.values()
        ]
