import logging
import sys
from typing import Dict, Any, Optional

import uvicorn

from fleetscaler.aws.wrapper import AWSWrapper
from fleetscaler.common.logger import setup_logging
from fleetscaler.config import load_config, Config
from fleetscaler.errors import ConfigurationInvalid, SchedulerBusy, SchedulerStopped, redact
from fleetscaler.fleet.cloudrun import CloudRunFleet
from fleetscaler.fleet.ecs import ECSFleet
from fleetscaler.queue_metrics.rabbitmq import RabbitMQQueueSource
from fleetscaler.queue_metrics.sqs import SQSQueueSource
from fleetscaler.scheduler import LoopHandle


def create_aws_wrapper(config: Config) -> Optional[AWSWrapper]:
    """AWS wrapper for the SQS/ECS backends, or None when neither is configured."""
    if config.queue_type != 'sqs' and config.fleet_type != 'ecs':
        return None
    return AWSWrapper(
        sso_profile_name=config.sso_profile,
        region_name=config.region,
        timeout=config.request_timeout
    )


def create_queue_source(config: Config, aws_wrapper: AWSWrapper = None):
    """
    Create the queue depth source for the configured queue type.

    Raises:
        ConfigurationInvalid: If the queue type is not supported
    """
    if config.queue_type == 'rabbitmq':
        return RabbitMQQueueSource(config.queue_config['url'], config.queue_name, timeout=config.request_timeout)
    if config.queue_type == 'sqs':
        return SQSQueueSource(aws_wrapper, config.queue_config['queue_url'])
    raise ConfigurationInvalid(f"Unsupported queue type: {config.queue_type}")


def create_fleet(config: Config, aws_wrapper: AWSWrapper = None):
    """
    Create the fleet controller for the configured fleet type.

    Raises:
        ConfigurationInvalid: If the fleet type is not supported
    """
    if config.fleet_type == 'cloudrun':
        return CloudRunFleet(config.project_id, config.region, config.service_name, timeout=config.request_timeout)
    if config.fleet_type == 'ecs':
        return ECSFleet(aws_wrapper, config.cluster_name, config.service_name)
    raise ConfigurationInvalid(f"Unsupported fleet type: {config.fleet_type}")


def build_loop(config: Config, reporter=None) -> LoopHandle:
    aws_wrapper = create_aws_wrapper(config)
    return LoopHandle.from_config(
        config,
        create_queue_source(config, aws_wrapper),
        create_fleet(config, aws_wrapper),
        reporter
    )


def scale_handler(handle: LoopHandle, secrets=(), timeout: float = None) -> Dict[str, Any]:
    """
    Run one triggered scaling cycle and describe its outcome.

    Args:
        handle: Running LoopHandle
        secrets: Values to mask in error messages
        timeout: Seconds to wait for an in-flight cycle

    Returns:
        dict: Scaling result, or an error with a non-success statusCode
    """
    try:
        decision = handle.trigger(timeout=timeout)
    except (SchedulerStopped, SchedulerBusy) as e:
        return {"statusCode": 503, "success": False, "error": str(e)}
    except Exception as e:
        logging.error(f"Scaling failed: {redact(e, secrets)}")
        return {"statusCode": 500, "success": False, "error": redact(e, secrets)}

    logging.info(f"Scaling complete - queue depth: {decision.observed_queue_depth}, "
                 f"current: {decision.current_instances}, target: {decision.target_instances}, "
                 f"scaled: {decision.changed}")
    return {
        "success": True,
        "queueDepth": decision.observed_queue_depth,
        "currentInstances": decision.current_instances,
        "targetInstances": decision.target_instances,
        "scaled": decision.changed,
        "applied": decision.applied,
        "direction": decision.direction,
        "dryRun": decision.dry_run
    }


def health_handler() -> Dict[str, Any]:
    return {"status": "healthy"}


def run(overrides: Dict[str, Any] = None) -> int:
    """
    Load configuration, start the scaling loop and serve the trigger endpoints.

    Returns:
        int: Process exit code
    """
    try:
        config = load_config(overrides)
        setup_logging(config.log_level)
        handle = build_loop(config)
    except ConfigurationInvalid as e:
        logging.critical(f"Invalid configuration: {e}")
        return 1

    # fleetscaler.server imports this module
    from fleetscaler.server import create_app

    logging.info(f"Starting custom scaler service on port {config.port} - "
                 f"queue: {config.queue_type}/{config.queue_name}, "
                 f"fleet: {config.fleet_type}/{config.service_name}, "
                 f"target per instance: {config.target_per_instance}, "
                 f"instances: [{config.min_instances}, {config.max_instances}], "
                 f"dry run: {config.dry_run}, interval: {config.polling_interval_ms}ms")

    app = create_app(handle, config)
    handle.start()
    try:
        uvicorn.run(app, host='0.0.0.0', port=config.port, log_config=None)
    finally:
        handle.stop()
    logging.info("Graceful shutdown complete")
    return 0


def main():
    setup_logging()
    sys.exit(run())
