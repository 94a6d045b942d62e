from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional

from sitewatch.backoff import BackoffPolicy
from sitewatch.monitors.http_monitor import RETRY_DELAY_SECONDS
from sitewatch.validation import validate_url


# Startup configuration, constructed once and never mutated
class MonitorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    elf_path: str
    interval: float = Field(default=60, gt=0)  # Seconds between checks
    timeout: float = Field(default=10, gt=0)  # Per-request timeout
    retries: int = Field(default=3, ge=1)  # Attempts before considering the site down
    retry_delay: float = Field(default=RETRY_DELAY_SECONDS, ge=0)
    verbose: bool = False

    backoff_initial: float = Field(default=60, gt=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    backoff_max: float = Field(default=3600, gt=0)

    @field_validator('url')
    @classmethod
    def validate_target_url(cls, v: str) -> str:
        v = v.strip()
        if not validate_url(v):
            raise ValueError('URL must be a non-empty http(s) address')
        return v

    @field_validator('elf_path')
    @classmethod
    def validate_elf_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('ELF binary path is required')
        return v

    @model_validator(mode='after')
    def validate_backoff_bounds(self) -> 'MonitorConfig':
        if self.backoff_initial > self.backoff_max:
            raise ValueError('backoff_initial must not exceed backoff_max')
        return self

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            initial=self.backoff_initial,
            factor=self.backoff_factor,
            maximum=self.backoff_max,
        )


# Pydantic Models (API)
class WatchdogStatus(BaseModel):
    running: bool
    target: str
    state: str
    consecutive_failures: int
    current_delay: float
    next_sleep: Optional[float] = None
    cycles: int = 0
    last_check: Optional[float] = None
    last_outcome: Optional[str] = None  # "UP" / "DOWN"
    remediation_runs: int = 0
    last_remediation_error: Optional[str] = None
    last_remediation_exit_code: Optional[int] = None
