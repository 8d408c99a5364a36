# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""Configuration for Monte Carlo simulations."""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from ..errors import ConfigurationError
from .distributions import parse_distribution
from .return_generator import get_return_model
from .random_source import MASK32

logger = logging.getLogger(__name__)

# JSON (camelCase) key -> dataclass field
_CAMEL_KEYS = {
    'confidenceIntervals': 'confidence_intervals',
    'randomSeed': 'random_seed',
    'maxIterations': 'max_iterations',
    'targetSurvivalMonths': 'target_survival_months',
    'targetSuccessRate': 'target_success_rate',
    'batchSize': 'batch_size',
    'trialTimeout': 'trial_timeout',
    'maxFailureRate': 'max_failure_rate',
    'varConfidence': 'var_confidence',
    'returnModel': 'return_model',
    'returnModelConfig': 'return_model_config',
    'variableRanges': 'variable_ranges',
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class MonteCarloConfig:
    """Configuration for Monte Carlo simulation parameters.

    Attributes:
        iterations: Number of trials requested. Default 100.
        confidence_intervals: Percentile levels reported per metric.
        random_seed: Optional base seed (0..2**32-1) for reproducible runs.
        max_iterations: Hard ceiling; larger iteration counts are clamped.
        target_survival_months: Months a trial must last to succeed. Default 300.
        target_success_rate: Success rate the plan is judged against. Default 0.80.
        batch_size: Trials per batch; progress is reported after each batch.
        workers: Worker threads per batch. Default 1.
        trial_timeout: Seconds a single trial may run before it is failed.
        max_failure_rate: Fraction of failed trials that aborts the run.
        var_confidence: Tail probability used for VaR and CVaR. Default 0.05.
        return_model: Optional return model id applied to every trial.
        return_model_config: Options passed to the return model.
        variable_ranges: Map of override path to distribution spec.
    """
    iterations: int = 100
    confidence_intervals: List[float] = field(default_factory=lambda: [10, 25, 50, 75, 90])
    random_seed: Optional[int] = None
    max_iterations: int = 1000
    target_survival_months: int = 300
    target_success_rate: float = 0.80
    batch_size: int = 50
    workers: int = 1
    trial_timeout: float = 30.0
    max_failure_rate: float = 0.5
    var_confidence: float = 0.05
    return_model: Optional[str] = None
    return_model_config: Dict[str, Any] = field(default_factory=dict)
    variable_ranges: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not _is_int(self.iterations) or self.iterations < 1:
            raise ConfigurationError("iterations must be a positive integer")
        if not _is_int(self.max_iterations) or self.max_iterations < 1:
            raise ConfigurationError("max_iterations must be a positive integer")
        if self.random_seed is not None and (
                not _is_int(self.random_seed) or not 0 <= self.random_seed <= MASK32):
            raise ConfigurationError(
                f"random_seed must be an integer in [0, {MASK32}], got {self.random_seed!r}")
        for level in self.confidence_intervals:
            if not _is_number(level) or not 0 <= level <= 100:
                raise ConfigurationError(f"Confidence interval must be within [0, 100]: {level!r}")
        if not _is_int(self.target_survival_months) or self.target_survival_months < 0:
            raise ConfigurationError("target_survival_months must be a non-negative integer")
        if not _is_number(self.target_success_rate) or not 0 <= self.target_success_rate <= 1:
            raise ConfigurationError("target_success_rate must be within [0, 1]")
        if not _is_int(self.batch_size) or self.batch_size < 1:
            raise ConfigurationError("batch_size must be a positive integer")
        if not _is_int(self.workers) or self.workers < 1:
            raise ConfigurationError("workers must be a positive integer")
        if not _is_number(self.trial_timeout) or self.trial_timeout <= 0:
            raise ConfigurationError("trial_timeout must be positive")
        if not _is_number(self.max_failure_rate) or not 0 <= self.max_failure_rate <= 1:
            raise ConfigurationError("max_failure_rate must be within [0, 1]")
        if not _is_number(self.var_confidence) or not 0 < self.var_confidence < 1:
            raise ConfigurationError("var_confidence must be within (0, 1)")
        if self.return_model is not None:
            get_return_model(self.return_model)
        if not isinstance(self.return_model_config, dict):
            raise ConfigurationError("return_model_config must be an object")
        if not isinstance(self.variable_ranges, dict):
            raise ConfigurationError("variable_ranges must be an object")
        for path, spec in self.variable_ranges.items():
            parse_distribution(spec, path)

        if self.iterations_capped:
            logger.warning(f"Requested {self.iterations} iterations exceeds the ceiling; "
                           f"running {self.max_iterations}")

    @property
    def effective_iterations(self) -> int:
        """Iterations actually run after applying the ceiling."""
        return min(self.iterations, self.max_iterations)

    @property
    def iterations_capped(self) -> bool:
        return self.iterations > self.max_iterations

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'MonteCarloConfig':
        """Build a config from JSON-shaped input (camelCase or snake_case keys).

        Raises:
            ConfigurationError: If a key is unknown or a value out of range
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("Monte Carlo config must be an object")
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown Monte Carlo config option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'iterations': self.iterations,
            'confidenceIntervals': list(self.confidence_intervals),
            'randomSeed': self.random_seed,
            'maxIterations': self.max_iterations,
            'targetSurvivalMonths': self.target_survival_months,
            'targetSuccessRate': self.target_success_rate,
            'batchSize': self.batch_size,
            'workers': self.workers,
            'trialTimeout': self.trial_timeout,
            'maxFailureRate': self.max_failure_rate,
            'varConfidence': self.var_confidence,
            'returnModel': self.return_model,
            'returnModelConfig': dict(self.return_model_config),
            'variableRanges': dict(self.variable_ranges),
        }
