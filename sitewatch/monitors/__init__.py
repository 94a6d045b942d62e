"""Monitor module exports"""
from .base import BaseMonitor, MonitorResult
from .http_monitor import HttpMonitor

__all__ = ['BaseMonitor', 'MonitorResult', 'HttpMonitor']
