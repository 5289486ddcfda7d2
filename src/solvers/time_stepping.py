"""
Time Stepping
=============

Step-size schedule and the step-cutting controller.
"""

import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Tuple

from .exceptions import TimeStepTooSmallError

LOG = logging.getLogger(__name__)


class StepState(Enum):
    ADVANCE = "advance"
    RETRY_SMALLER = "retry_smaller"
    ABORT = "abort"


class TimeStepSchedule:
    """
    Piecewise-constant step size.

    Entries are (start_time, time_step); the step used at time t is the one
    of the last entry starting at or before t.
    """

    def __init__(self, entries: Sequence[Tuple[float, float]]):
        if not entries:
            raise ValueError("Time step schedule needs at least one entry")
        entries = sorted((float(t), float(dt)) for t, dt in entries)
        for t, dt in entries:
            if dt <= 0:
                raise ValueError(f"Time step must be positive, got {dt} at t = {t}")
        self.start_times = [t for t, _ in entries]
        self.time_steps = [dt for _, dt in entries]

    @classmethod
    def constant(cls, time_step: float) -> 'TimeStepSchedule':
        return cls([(0.0, time_step)])

    def get_time_step(self, time: float) -> float:
        idx = bisect_right(self.start_times, time + 1e-12) - 1
        return self.time_steps[max(idx, 0)]


@dataclass
class TimeStepConfig:
    """Configuration for time stepping."""
    end_time: float = 1.0
    schedule: List[Tuple[float, float]] = field(default_factory=lambda: [(0.0, 0.1)])
    minimum_time_step: float = 1e-10
    cut_factor: float = 10.0

    def __post_init__(self):
        if self.end_time <= 0:
            raise ValueError(f"end_time must be positive, got {self.end_time}")
        if self.minimum_time_step <= 0:
            raise ValueError(f"minimum_time_step must be positive, got {self.minimum_time_step}")
        if self.cut_factor <= 1:
            raise ValueError(f"cut_factor must be > 1, got {self.cut_factor}")
        self.schedule = [tuple(entry) for entry in self.schedule]

    def make_schedule(self) -> TimeStepSchedule:
        return TimeStepSchedule(self.schedule)


class TimeStepController:
    """
    Reacts to the outcome of a Newton attempt.

    A diverged attempt is retried with the step divided by cut_factor,
    unless that would fall below minimum_time_step, which aborts.

    Attributes:
        state: StepState after the last decision
        n_cuts: total number of step cuts
        accepted_time_step: size of the last accepted step
    """

    def __init__(self, cut_factor: float = 10.0, minimum_time_step: float = 1e-10):
        if cut_factor <= 1:
            raise ValueError(f"cut_factor must be > 1, got {cut_factor}")
        self.cut_factor = cut_factor
        self.minimum_time_step = minimum_time_step
        self.state = StepState.ADVANCE
        self.n_cuts = 0
        self.accepted_time_step = None

    @classmethod
    def from_config(cls, config: TimeStepConfig) -> 'TimeStepController':
        return cls(config.cut_factor, config.minimum_time_step)

    def on_converged(self, time_step: float) -> StepState:
        self.accepted_time_step = time_step
        self.state = StepState.ADVANCE
        return self.state

    def on_diverged(self, time: float, time_step: float) -> float:
        """
        Next step size after a failed attempt.

        Raises:
            TimeStepTooSmallError: if the reduced step is below the minimum
        """
        new_time_step = time_step / self.cut_factor
        if new_time_step < self.minimum_time_step:
            self.state = StepState.ABORT
            LOG.error("Time step too small at t = %.6e: aborting", time)
            raise TimeStepTooSmallError(time, new_time_step, self.minimum_time_step)

        self.state = StepState.RETRY_SMALLER
        self.n_cuts += 1
        LOG.warning("Time step did not converge at t = %.6e: reducing to dt = %.3e",
                    time, new_time_step)
        return new_time_step
