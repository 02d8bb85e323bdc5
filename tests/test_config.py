import pytest

from config.settings import get_rabbitmq_config, get_scheduler_config
from timetabling.models.scheduler_config import SchedulerConfig


def test_defaults():
    config = SchedulerConfig()
    assert config.initial_pool_size == 10
    assert config.max_es_iterations == 10000
    assert config.seed is None
    assert config.to_dict()["cooling_rate"] == 0.99


@pytest.mark.parametrize("options", [
    {"sigma": 0},
    {"initial_pool_size": -1},
    {"cooling_rate": 1.0},
    {"sigma_decay": 1.5},
    {"max_es_iterations": 2.5},
    {"max_probes": True},
    {"min_sigma": 3.0, "sigma": 2.0},
    {"seed": "abc"},
    {"seed": True},
    {"time_limit": 0},
])
def test_invalid_options(options):
    with pytest.raises(ValueError):
        SchedulerConfig(**options)


def test_from_dict_accepts_camel_case_and_ignores_unknown_keys():
    config = SchedulerConfig.from_dict({"maxESIterations": 50, "coolingRate": 0.9, "seed": 3, "colour": "red"})
    assert config.max_es_iterations == 50
    assert config.cooling_rate == 0.9
    assert config.seed == 3
    assert config.sigma == 2.0


def test_whole_floats_become_integers():
    assert SchedulerConfig(max_probes=5.0).max_probes == 5
    assert isinstance(SchedulerConfig(max_probes=5.0).max_probes, int)


def test_scheduler_config_from_environment(monkeypatch):
    monkeypatch.setenv("SCHEDULER_MAX_ES_ITERATIONS", "250")
    monkeypatch.setenv("SCHEDULER_TEMPERATURE", "0.8")
    monkeypatch.setenv("SCHEDULER_SEED", "")
    config = get_scheduler_config()
    assert config.max_es_iterations == 250
    assert config.temperature == 0.8
    assert config.seed is None


def test_rabbitmq_config(monkeypatch):
    monkeypatch.setenv("RABBITMQ_QUEUE", "timetable_requests")
    monkeypatch.setenv("RABBITMQ_PORT", "5673")
    config = get_rabbitmq_config()
    assert config["queue_name"] == "timetable_requests"
    assert config["port"] == 5673
