"""Connectivity monitoring."""

from .monitor import NetworkMonitor, OnlineListener

__all__ = ["NetworkMonitor", "OnlineListener"]
