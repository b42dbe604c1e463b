"""
Log cutter.

Splits raw job log text into log slice events, using the marker
convention jobs write to their output:

    [name] text               content of section "name"
    [name|PHASE] description  start of a phase called "name"
    [name|DONE]               section finished successfully
    [name|FAIL] message       section failed
    [name|RESULT] payload     job result announcement

Lines without a marker belong to the default section. A section is
started implicitly the first time content for it appears.
"""

import re
from collections.abc import Iterable, Iterator

from src.core.models import LogEvent, LogEventType

DEFAULT_SECTION = "default"

MARKER_PATTERN = re.compile(r"^\[(?P<name>[^\]|]+)(?:\|(?P<verb>[A-Z]+))?\]\s?(?P<payload>.*)$")

VERBS: dict[str, LogEventType] = {
    "PHASE": LogEventType.PHASE,
    "DONE": LogEventType.DONE,
    "FAIL": LogEventType.FAIL,
    "RESULT": LogEventType.RESULT,
}


class LogCutter:
    """
    Stateful line-to-event converter.

    Remembers which sections were started so content for a new section
    is preceded by exactly one start event. A phase change forgets the
    started sections, because sections are scoped to their phase.

    Example:
        >>> cutter = LogCutter()
        >>> [e.type for e in cutter.cut_line("[build] compiling")]
        [<LogEventType.START: 'start'>, <LogEventType.CONTENT: 'content'>]
    """

    def __init__(self) -> None:
        self._open: set[str] = set()

    def cut_line(self, line: str) -> list[LogEvent]:
        """Convert one line of log output into zero or more events."""
        line = line.rstrip("\r\n")
        match = MARKER_PATTERN.match(line.strip())

        if match is None:
            return self._content(DEFAULT_SECTION, line)

        name = match.group("name").strip()
        verb = match.group("verb")
        payload = match.group("payload").strip()

        if verb is None:
            return self._content(name, payload)

        event_type = VERBS.get(verb)
        if event_type is None:
            # Unknown verb: keep the whole line as plain content
            return self._content(DEFAULT_SECTION, line)

        if event_type == LogEventType.PHASE:
            self._open.clear()
        elif event_type in (LogEventType.DONE, LogEventType.FAIL):
            self._open.discard(name)

        return [LogEvent(name, event_type, payload)]

    def cut(self, lines: Iterable[str]) -> Iterator[LogEvent]:
        for line in lines:
            yield from self.cut_line(line)

    def _content(self, name: str, payload: str) -> list[LogEvent]:
        events = []
        if name not in self._open:
            self._open.add(name)
            events.append(LogEvent(name, LogEventType.START))
        events.append(LogEvent(name, LogEventType.CONTENT, payload))
        return events


def cut_text(text: str) -> list[LogEvent]:
    """Cut a complete log text into events (convenience function)."""
    return list(LogCutter().cut(text.splitlines()))
