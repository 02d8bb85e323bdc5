from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

# camelCase keys used by the editor's advanced settings panel
_CAMEL_CASE_KEYS = {
    "initialPoolSize": "initial_pool_size",
    "maxESIterations": "max_es_iterations",
    "sigma": "sigma",
    "sigmaDecay": "sigma_decay",
    "minSigma": "min_sigma",
    "maxStagnantIterations": "max_stagnant_iterations",
    "maxAnnealingIterations": "max_annealing_iterations",
    "temperature": "temperature",
    "coolingRate": "cooling_rate",
    "minTemperature": "min_temperature",
    "maxProbes": "max_probes",
    "timeLimit": "time_limit",
}

_RATES = ("sigma_decay", "cooling_rate")
_INTEGERS = (
    "initial_pool_size",
    "max_es_iterations",
    "max_stagnant_iterations",
    "max_annealing_iterations",
    "max_probes",
)


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Tuning parameters of the timetable search.

    Attributes:
        initial_pool_size: Candidates generated before refinement starts
        max_es_iterations: Iteration budget of the (1+1) evolution strategy
        sigma: Initial mutation strength (number of occurrences resampled)
        sigma_decay: Factor applied to sigma after every ES iteration
        min_sigma: Lower bound for sigma
        max_stagnant_iterations: Iterations without improvement before annealing kicks in
        max_annealing_iterations: Iteration cap of one annealing run
        temperature: Starting temperature of simulated annealing
        cooling_rate: Geometric cooling factor per annealing iteration
        min_temperature: Annealing stops once the temperature drops below this
        max_probes: Random slot probes per occurrence while seeding
        seed: Root seed of the random source (None = nondeterministic)
        time_limit: Optional wall-clock budget in seconds
    """
    initial_pool_size: int = 10
    max_es_iterations: int = 10000
    sigma: float = 2.0
    sigma_decay: float = 0.98
    min_sigma: float = 0.1
    max_stagnant_iterations: int = 500
    max_annealing_iterations: int = 2500
    temperature: float = 0.5
    cooling_rate: float = 0.99
    min_temperature: float = 0.00001
    max_probes: int = 20
    seed: Optional[int] = None
    time_limit: Optional[float] = None

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in ("seed", "time_limit") and value is None:
                continue
            if f.name == "seed":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"seed must be an integer, got {value!r}")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{f.name} must be a number, got {value!r}")
            if f.name in _INTEGERS and int(value) != value:
                raise ValueError(f"{f.name} must be a whole number, got {value!r}")
            if f.name in _INTEGERS:
                object.__setattr__(self, f.name, int(value))
            if value <= 0:
                raise ValueError(f"{f.name} must be strictly positive, got {value!r}")
            if f.name in _RATES and value >= 1:
                raise ValueError(f"{f.name} must be in (0, 1), got {value!r}")
        if self.min_sigma > self.sigma:
            raise ValueError(f"min_sigma ({self.min_sigma}) cannot exceed sigma ({self.sigma})")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchedulerConfig":
        """
        Builds a config from a mapping, starting from the defaults.

        Keys may be snake_case or the camelCase names of the settings panel;
        unknown keys are ignored.
        """
        merged = asdict(cls())
        for key, value in (data or {}).items():
            key = _CAMEL_CASE_KEYS.get(key, key)
            if key in merged:
                merged[key] = value
        return cls(**merged)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
