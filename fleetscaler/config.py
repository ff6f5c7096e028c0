import os
from typing import Dict, Any, List, Optional, NamedTuple
from urllib.parse import urlsplit, unquote

from fleetscaler.errors import ConfigurationInvalid

MIN_POLLING_INTERVAL_MS = 1000
MAX_POLLING_INTERVAL_MS = 60000

QUEUE_TYPES = ('rabbitmq', 'sqs')
FLEET_TYPES = ('cloudrun', 'ecs')


class Config(NamedTuple):
    """Configuration for the autoscaler."""
    # Scaling parameters
    target_per_instance: int
    min_instances: int
    max_instances: int
    dry_run: bool
    polling_interval_ms: int

    # Queue configuration
    queue_type: str
    queue_name: str
    queue_config: Dict[str, Any]

    # Fleet configuration
    fleet_type: str
    service_name: str
    project_id: Optional[str]
    region: Optional[str]
    cluster_name: Optional[str]
    sso_profile: Optional[str]

    # Runtime
    request_timeout: float
    shutdown_grace: float
    log_level: str
    port: int

    @property
    def polling_interval(self) -> float:
        """Polling interval in seconds."""
        return self.polling_interval_ms / 1000.0

    def secrets(self) -> List[str]:
        """Values that must never appear in logs or responses."""
        found = []
        url = self.queue_config.get('url')
        if url:
            password = urlsplit(url).password
            if password:
                found.extend({password, unquote(password)})
        return found


def _setting(overrides: Dict[str, Any], key: str, env_name: str, default=None):
    value = overrides.get(key)
    if value is None or value == '':
        value = os.environ.get(env_name)
    if value is None or value == '':
        return default
    return value


def _int_setting(overrides, key, env_name, default):
    raw = _setting(overrides, key, env_name, default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigurationInvalid(f"{env_name} must be an integer, got {raw!r}")


def _float_setting(overrides, key, env_name, default):
    raw = _setting(overrides, key, env_name, default)
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigurationInvalid(f"{env_name} must be a number, got {raw!r}")


def _bool_setting(overrides, key, env_name, default='false'):
    raw = _setting(overrides, key, env_name, default)
    if isinstance(raw, bool):
        return raw
    return str(raw).lower() in ('true', '1', 't', 'yes')


def _required(value, env_name):
    if not value:
        raise ConfigurationInvalid(f"Missing required environment variable: {env_name}")
    return value


def load_config(overrides: Dict[str, Any] = None) -> Config:
    """
    Load configuration from environment variables and optional overrides.

    Override values take precedence over environment variables when present.

    Args:
        overrides: Optional mapping of Config field names to values

    Returns:
        Config: Validated configuration object

    Raises:
        ConfigurationInvalid: If a required setting is missing or a value is out of range
    """
    overrides = overrides or {}

    target_per_instance = _int_setting(overrides, 'target_per_instance', 'TARGET_PER_INSTANCE', '3')
    min_instances = _int_setting(overrides, 'min_instances', 'MIN_INSTANCES', '0')
    max_instances = _int_setting(overrides, 'max_instances', 'MAX_INSTANCES', '5')
    dry_run = _bool_setting(overrides, 'dry_run', 'DRY_RUN')
    polling_interval_ms = _int_setting(overrides, 'polling_interval_ms', 'POLLING_INTERVAL_MS', '2000')

    # Queue configuration
    queue_type = str(_setting(overrides, 'queue_type', 'QUEUE_TYPE', 'rabbitmq')).lower()
    queue_name = _setting(overrides, 'queue_name', 'TASK_QUEUE', 'tasks')
    queue_config = overrides.get('queue_config') or {}
    if not queue_config:
        if queue_type == 'rabbitmq':
            queue_config = {'url': os.environ.get('RABBITMQ_URL')}
        elif queue_type == 'sqs':
            queue_config = {'queue_url': os.environ.get('SQS_QUEUE_URL')}

    # Clean None values from queue_config
    queue_config = {k: v for k, v in queue_config.items() if v is not None}

    # Fleet configuration
    fleet_type = str(_setting(overrides, 'fleet_type', 'FLEET_TYPE', 'cloudrun')).lower()
    service_name = _setting(overrides, 'service_name', 'PROCESSOR_SERVICE_NAME', 'poc-processor')
    project_id = _setting(overrides, 'project_id', 'PROJECT_ID')
    region = _setting(overrides, 'region', 'REGION')
    if fleet_type == 'ecs' and not region:
        region = os.environ.get('AWS_REGION')
    cluster_name = _setting(overrides, 'cluster_name', 'ECS_CLUSTER')
    sso_profile = _setting(overrides, 'sso_profile', 'SSO_PROFILE')

    request_timeout = _float_setting(overrides, 'request_timeout', 'REQUEST_TIMEOUT_SECONDS', '10')
    shutdown_grace = _float_setting(overrides, 'shutdown_grace', 'SHUTDOWN_GRACE_SECONDS', '5')
    log_level = str(_setting(overrides, 'log_level', 'LOG_LEVEL', 'INFO')).upper()
    port = _int_setting(overrides, 'port', 'PORT', '8080')

    # Validate configuration
    if queue_type not in QUEUE_TYPES:
        raise ConfigurationInvalid(f"Unsupported queue type: {queue_type}. Supported types: {', '.join(QUEUE_TYPES)}")
    if fleet_type not in FLEET_TYPES:
        raise ConfigurationInvalid(f"Unsupported fleet type: {fleet_type}. Supported types: {', '.join(FLEET_TYPES)}")

    if queue_type == 'rabbitmq':
        _required(queue_config.get('url'), 'RABBITMQ_URL')
    else:
        _required(queue_config.get('queue_url'), 'SQS_QUEUE_URL')

    if fleet_type == 'cloudrun':
        _required(project_id, 'PROJECT_ID')
        _required(region, 'REGION')
    else:
        _required(cluster_name, 'ECS_CLUSTER')
    _required(service_name, 'PROCESSOR_SERVICE_NAME')
    _required(queue_name, 'TASK_QUEUE')

    if target_per_instance <= 0:
        raise ConfigurationInvalid("TARGET_PER_INSTANCE must be > 0")
    if min_instances < 0:
        raise ConfigurationInvalid("MIN_INSTANCES must be >= 0")
    if max_instances < min_instances:
        raise ConfigurationInvalid("MAX_INSTANCES must be >= MIN_INSTANCES")
    if not MIN_POLLING_INTERVAL_MS <= polling_interval_ms <= MAX_POLLING_INTERVAL_MS:
        raise ConfigurationInvalid(
            f"POLLING_INTERVAL_MS must be between {MIN_POLLING_INTERVAL_MS} and {MAX_POLLING_INTERVAL_MS}")
    if request_timeout <= 0:
        raise ConfigurationInvalid("REQUEST_TIMEOUT_SECONDS must be > 0")
    if shutdown_grace < 0:
        raise ConfigurationInvalid("SHUTDOWN_GRACE_SECONDS must be >= 0")

    return Config(
        target_per_instance=target_per_instance,
        min_instances=min_instances,
        max_instances=max_instances,
        dry_run=dry_run,
        polling_interval_ms=polling_interval_ms,
        queue_type=queue_type,
        queue_name=queue_name,
        queue_config=queue_config,
        fleet_type=fleet_type,
        service_name=service_name,
        project_id=project_id,
        region=region,
        cluster_name=cluster_name,
        sso_profile=sso_profile,
        request_timeout=request_timeout,
        shutdown_grace=shutdown_grace,
        log_level=log_level,
        port=port
    )
