from .base import Sample, ToolUnavailable, join_errors, run_tool
from .platform import PlatformSamplers, detect_platform

__all__ = [
    "Sample",
    "ToolUnavailable",
    "join_errors",
    "run_tool",
    "PlatformSamplers",
    "detect_platform",
]
