"""
Diagnostics observers for the pitch detection engine.

When enabled, the engine reports why a call produced no reading and how
candidates were ranked. Events are informational only: a sink cannot
change what the engine returns.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable

from vocalpitch.core.models import FundamentalCandidate, RejectionReason


# Event kinds
REJECTION = "rejection"
RANKING = "ranking"
ESCALATION = "escalation"
READING = "reading"


@dataclass(frozen=True)
class DiagnosticEvent:
    """One observation from a detection call."""

    kind: str
    stage: str  # "spectral", "fallback" or "engine"
    reason: Optional[RejectionReason] = None
    message: str = ""
    candidates: Tuple[FundamentalCandidate, ...] = ()
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'stage': self.stage,
            'reason': self.reason.value if self.reason else None,
            'message': self.message,
            'candidates': [c.to_dict() for c in self.candidates],
            'data': dict(self.data),
        }


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Anything with ``record(event)``."""

    def record(self, event: DiagnosticEvent) -> None:
        ...


class RecordingDiagnosticsSink:
    """Keeps every event in memory. Mostly for tests."""

    def __init__(self):
        self.events: List[DiagnosticEvent] = []

    def record(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: str) -> List[DiagnosticEvent]:
        return [event for event in self.events if event.kind == kind]

    @property
    def rejection_reasons(self) -> List[RejectionReason]:
        return [event.reason for event in self.events if event.reason is not None]

    def clear(self) -> None:
        self.events.clear()


class LoggingDiagnosticsSink:
    """
    Writes events to a logger at DEBUG.

    Pass a ContextLoggerAdapter to keep the engine id on every record.
    """

    def __init__(
        self,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        level: int = logging.DEBUG,
    ):
        self.logger = logger or logging.getLogger('engine.diagnostics')
        self.level = level

    def record(self, event: DiagnosticEvent) -> None:
        text = f"[{event.stage}] {event.kind}"
        if event.reason is not None:
            text += f": {event.reason.value}"
        if event.message:
            text += f" ({event.message})"
        if event.candidates:
            ranked = ", ".join(
                f"{c.frequency_hz:.1f}Hz={c.score:.1f}" for c in event.candidates[:5]
            )
            text += f" top: {ranked}"

        self.logger.log(self.level, text, extra={'diagnostic': event.to_dict()})
