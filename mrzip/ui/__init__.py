"""User interface and display components for mrzip."""

from .display_utils import DisplayUtils
from .progress_display import ProgressDisplay

__all__ = [
    "DisplayUtils",
    "ProgressDisplay",
]
