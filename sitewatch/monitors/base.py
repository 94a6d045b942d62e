"""Base classes for monitoring protocols"""
from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass
class MonitorResult:
    """Standardized result from a single check attempt"""
    success: bool
    latency_ms: Optional[float]
    protocol: str  # "http"
    raw_data: Dict[str, Any]
    error: Optional[str] = None


class BaseMonitor:
    """Base class for all monitors"""

    async def check(self, target: str, **kwargs) -> MonitorResult:
        """
        Perform a single health check attempt against the target.
        Returns MonitorResult with success/failure and latency.
        """
        raise NotImplementedError("Subclasses must implement check()")

    async def probe(self, target: str, timeout: float, max_attempts: int) -> bool:
        """
        Classify the target as UP (True) or DOWN (False) using a retry policy.
        """
        raise NotImplementedError("Subclasses must implement probe()")
