# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""Exception types raised by the simulation and Monte Carlo engines."""

from typing import Any, Optional


class RetireModelError(Exception):
    """Base class for all errors raised by retire_model."""


class ValidationError(RetireModelError, ValueError):
    """Scenario input is malformed. Raised before any simulation starts.

    Attributes:
        field_path: Dotted path of the offending field (e.g. "plan.monthly_expenses")
        scenario_id: Identifier of the scenario being validated, if known
    """

    def __init__(self, field_path: str, message: str, scenario_id: Optional[str] = None):
        self.field_path = field_path
        self.scenario_id = scenario_id
        self.reason = message
        prefix = f"[{scenario_id}] " if scenario_id else ""
        super().__init__(f"{prefix}{field_path}: {message}")


class ConfigurationError(RetireModelError, ValueError):
    """Model or orchestrator configuration is invalid."""


class UnknownModelError(ConfigurationError):
    """Requested return model identifier is not registered."""

    def __init__(self, model_type: Any):
        self.model_type = model_type
        super().__init__(f"Unknown return model: {model_type!r}")


class UnknownDistributionError(ConfigurationError):
    """Distribution spec names an unsupported distribution type."""

    def __init__(self, distribution_type: Any, field_path: Optional[str] = None):
        self.distribution_type = distribution_type
        self.field_path = field_path
        where = f" for {field_path}" if field_path else ""
        super().__init__(f"Unknown distribution type{where}: {distribution_type!r}")


class TrialError(RetireModelError):
    """A single Monte Carlo trial raised or timed out.

    The scenario id, trial index and seed are enough to replay the
    failing trial.
    """

    def __init__(self, trial_index: int, seed: int, cause: BaseException,
                 timed_out: bool = False, scenario_id: Optional[str] = None):
        self.trial_index = trial_index
        self.seed = seed
        self.cause = cause
        self.timed_out = timed_out
        self.scenario_id = scenario_id
        kind = "timed out" if timed_out else f"failed: {cause}"
        prefix = f"[{scenario_id}] " if scenario_id else ""
        super().__init__(f"{prefix}Trial {trial_index} (seed={seed}) {kind}")

    def to_dict(self) -> dict:
        return {
            'scenarioId': self.scenario_id,
            'trialIndex': self.trial_index,
            'seed': self.seed,
            'timedOut': self.timed_out,
            'error': str(self.cause),
        }


class BatchFailure(RetireModelError):
    """Too many trials failed; the partial analysis is attached."""

    def __init__(self, message: str, partial: Any = None, completed: int = 0):
        self.partial = partial
        self.completed = completed
        super().__init__(f"{message} (completed trials: {completed})")


class RunInProgressError(RetireModelError):
    """An orchestrator instance was asked to start a second concurrent run."""
