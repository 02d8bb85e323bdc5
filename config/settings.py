import os
from typing import Dict, Any

from timetabling.models.scheduler_config import SchedulerConfig


def get_rabbitmq_config() -> Dict[str, Any]:
    """Get RabbitMQ configuration from environment variables"""
    return {
        "host": os.getenv("RABBITMQ_HOST", "localhost"),
        "port": int(os.getenv("RABBITMQ_PORT", 5672)),
        "vhost": os.getenv("RABBITMQ_VHOST", "/"),
        "username": os.getenv("RABBITMQ_USERNAME", "guest"),
        "password": os.getenv("RABBITMQ_PASSWORD", "guest"),
        "queue_name": os.getenv("RABBITMQ_QUEUE", "timetable"),
        "heartbeat": int(os.getenv("RABBITMQ_HEARTBEAT", 600)),
        "connection_attempts": int(os.getenv("RABBITMQ_CONNECTION_ATTEMPTS", 3)),
        "retry_delay": int(os.getenv("RABBITMQ_RETRY_DELAY", 5)),
    }


def get_app_config() -> Dict[str, Any]:
    """Get application configuration from environment variables"""
    return {
        "debug": os.getenv("DEBUG", "False").lower() == "true",
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }


# Environment variable -> SchedulerConfig field, with the converter to apply
_SCHEDULER_ENV = {
    "SCHEDULER_INITIAL_POOL_SIZE": ("initial_pool_size", int),
    "SCHEDULER_MAX_ES_ITERATIONS": ("max_es_iterations", int),
    "SCHEDULER_SIGMA": ("sigma", float),
    "SCHEDULER_SIGMA_DECAY": ("sigma_decay", float),
    "SCHEDULER_MIN_SIGMA": ("min_sigma", float),
    "SCHEDULER_MAX_STAGNANT_ITERATIONS": ("max_stagnant_iterations", int),
    "SCHEDULER_MAX_ANNEALING_ITERATIONS": ("max_annealing_iterations", int),
    "SCHEDULER_TEMPERATURE": ("temperature", float),
    "SCHEDULER_COOLING_RATE": ("cooling_rate", float),
    "SCHEDULER_MIN_TEMPERATURE": ("min_temperature", float),
    "SCHEDULER_MAX_PROBES": ("max_probes", int),
    "SCHEDULER_SEED": ("seed", int),
    "SCHEDULER_TIME_LIMIT": ("time_limit", float),
}


def get_scheduler_config() -> SchedulerConfig:
    """
    Get the default scheduler configuration from environment variables.

    Unset variables keep the SchedulerConfig defaults; requests can still
    override any option in their payload.
    """
    overrides = {}
    for env_name, (field_name, convert) in _SCHEDULER_ENV.items():
        value = os.getenv(env_name)
        if value is not None and value != "":
            overrides[field_name] = convert(value)
    return SchedulerConfig.from_dict(overrides)
