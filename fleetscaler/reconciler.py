"""
One scaling cycle: sample the queue, decide a target, reconcile the fleet.

A cycle performs at most one mutating call and reports exactly one event.
It never retries and never falls back to a cached depth; a failed read
ends the cycle without touching the fleet and the next cycle starts from
scratch.
"""
import logging
from typing import NamedTuple

from fleetscaler.common import events
from fleetscaler.common.events import CycleEvent, LoggingReporter
from fleetscaler.errors import redact
from fleetscaler.scaler import NONE, decide, scaling_direction, scaling_reason


class ScalingDecision(NamedTuple):
    observed_queue_depth: int
    current_instances: int
    target_instances: int
    changed: bool
    direction: str
    applied: bool = False
    dry_run: bool = False


def _fail(reporter, config, error, component, depth=None, current=None, target=None):
    description = redact(error, config.secrets())
    reporter.report(CycleEvent(
        kind=events.ERROR,
        observed_queue_depth=depth,
        current_instances=current,
        target_instances=target,
        reason=type(error).__name__,
        component=getattr(error, 'component', None) or component,
        error=description
    ))


def run_cycle(config, queue_source, fleet, reporter=None) -> ScalingDecision:
    """
    Run one reconciliation cycle.

    Args:
        config: Validated Config
        queue_source: Object with ``sample() -> int``
        fleet: Object with ``get_current() -> int`` and ``set_target(count)``
        reporter: Event reporter (default: LoggingReporter)

    Returns:
        ScalingDecision: What was observed, decided and applied

    Raises:
        ScalerError: If a remote read or the fleet update fails; the error
            event has already been reported
    """
    reporter = reporter or LoggingReporter()
    logging.debug("Starting scale operation")

    # 1. Queue depth
    try:
        queue_depth = queue_source.sample()
    except Exception as e:
        _fail(reporter, config, e, 'queue')
        raise

    # 2. Target instance count
    target = decide(queue_depth, config)
    logging.debug(f"Calculated target instances: {target} for queue depth {queue_depth} "
                  f"(target per instance {config.target_per_instance}, "
                  f"bounds [{config.min_instances}, {config.max_instances}])")

    # 3. Current instance count
    try:
        current = fleet.get_current()
    except Exception as e:
        _fail(reporter, config, e, 'fleet', depth=queue_depth, target=target)
        raise

    direction = scaling_direction(current, target)
    decision = ScalingDecision(
        observed_queue_depth=queue_depth,
        current_instances=current,
        target_instances=target,
        changed=direction != NONE,
        direction=direction,
        dry_run=config.dry_run
    )
    event = CycleEvent(
        kind=events.NOOP,
        observed_queue_depth=queue_depth,
        current_instances=current,
        target_instances=target,
        reason=scaling_reason(direction)
    )

    # 4. Steady state
    if not decision.changed:
        reporter.report(event)
        return decision

    # 5. Dry run
    if config.dry_run:
        reporter.report(event._replace(kind=events.DRY_RUN))
        return decision

    # 6. Apply
    try:
        fleet.set_target(target)
    except Exception as e:
        _fail(reporter, config, e, 'fleet', depth=queue_depth, current=current, target=target)
        raise

    reporter.report(event._replace(kind=events.SCALED))
    return decision._replace(applied=True)
