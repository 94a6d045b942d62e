"""
Backoff state machine for the watchdog loop.

Two states, derived from the consecutive failure counter:

    NOMINAL  --DOWN-->  DEGRADED   sleep base interval (first failure)
    DEGRADED --DOWN-->  DEGRADED   delay = min(delay * factor, maximum), sleep delay
    any      --UP---->  NOMINAL    counter = 0, delay = initial, sleep base interval

No I/O happens here, the loop in monitor_manager drives it.
"""
from dataclasses import dataclass
from enum import Enum


class MonitorState(str, Enum):
    NOMINAL = "NOMINAL"
    DEGRADED = "DEGRADED"


@dataclass(frozen=True)
class BackoffPolicy:
    """Growth parameters for the inter-cycle delay"""
    initial: float
    factor: float
    maximum: float

    def __post_init__(self):
        if self.initial <= 0:
            raise ValueError("Backoff initial delay must be positive")
        if self.factor < 1:
            raise ValueError("Backoff factor must be >= 1")
        if self.initial > self.maximum:
            raise ValueError("Backoff initial delay must not exceed the maximum delay")

    def grow(self, delay: float) -> float:
        return min(delay * self.factor, self.maximum)


@dataclass
class BackoffState:
    consecutive_failures: int
    current_delay: float

    @classmethod
    def initial(cls, policy: BackoffPolicy) -> "BackoffState":
        return cls(consecutive_failures=0, current_delay=policy.initial)

    @property
    def state(self) -> MonitorState:
        if self.consecutive_failures > 0:
            return MonitorState.DEGRADED
        return MonitorState.NOMINAL

    @property
    def backing_off(self) -> bool:
        """True once the grown delay replaces the base interval"""
        return self.consecutive_failures > 1

    def record_up(self, policy: BackoffPolicy):
        self.consecutive_failures = 0
        self.current_delay = policy.initial

    def record_down(self, policy: BackoffPolicy):
        self.consecutive_failures += 1
        if self.consecutive_failures > 1:
            self.current_delay = policy.grow(self.current_delay)

    def observe(self, outcome: bool, policy: BackoffPolicy, base_interval: float) -> float:
        """
        Apply one cycle's outcome (True = UP) and return how long to sleep
        before the next cycle.
        """
        if outcome:
            self.record_up(policy)
            return base_interval

        self.record_down(policy)
        if self.backing_off:
            return self.current_delay
        return base_interval
