"""Links dashboard with live host resource telemetry."""

__version__ = "0.1.0"
