"""
Structured cycle events.

Every reconciliation cycle ends with exactly one event, handed to a
reporter. The default reporter writes it to the ``fleetscaler.events``
logger with the event fields attached as ``extra`` so the JSON formatter
emits them as top-level keys.
"""
import logging
from typing import Any, Dict, NamedTuple, Optional

NOOP = 'noop'
DRY_RUN = 'dry_run'
SCALED = 'scaled'
ERROR = 'error'

EVENT_LEVELS = {
    NOOP: logging.DEBUG,
    DRY_RUN: logging.INFO,
    SCALED: logging.INFO,
    ERROR: logging.ERROR,
}

EVENT_MESSAGES = {
    NOOP: "No scaling needed",
    DRY_RUN: "[DRY RUN] Would scale processor",
    SCALED: "Scaled processor",
    ERROR: "Scaling cycle failed",
}


class CycleEvent(NamedTuple):
    kind: str
    observed_queue_depth: Optional[int]
    current_instances: Optional[int]
    target_instances: Optional[int]
    reason: str
    component: Optional[str] = None
    error: Optional[str] = None

    def fields(self) -> Dict[str, Any]:
        fields = {
            'event': self.kind,
            'observedQueueDepth': self.observed_queue_depth,
            'currentInstances': self.current_instances,
            'targetInstances': self.target_instances,
            'reason': self.reason,
        }
        if self.kind in (DRY_RUN, SCALED):
            fields['from'] = self.current_instances
            fields['to'] = self.target_instances
        if self.kind == ERROR:
            fields['component'] = self.component
            fields['error'] = self.error
        return fields


class LoggingReporter:
    """Report cycle events through the standard logging module."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('fleetscaler.events')

    def report(self, event: CycleEvent):
        level = EVENT_LEVELS.get(event.kind, logging.INFO)
        message = EVENT_MESSAGES.get(event.kind, event.kind)
        if event.kind == ERROR:
            message = f"{message} in {event.component}: {event.error}"
        elif event.kind in (DRY_RUN, SCALED):
            message = (f"{message} from {event.current_instances} to {event.target_instances} "
                       f"({event.reason}, queue depth {event.observed_queue_depth})")
        self.logger.log(level, message, extra=event.fields())
