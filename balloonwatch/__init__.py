"""Balloon telemetry / aircraft proximity correlation service."""

__version__ = "1.0.0"
