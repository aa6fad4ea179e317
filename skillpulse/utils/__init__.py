"""
Shared utility functions.
"""

from skillpulse.utils.config_helpers import merge_configs, load_pipeline_config
from skillpulse.utils.context import Cancelled, RunContext
from skillpulse.utils.partial import Gathered, gather_partial

__all__ = [
    # Run control
    "Cancelled",
    "RunContext",
    # Partial failure handling
    "Gathered",
    "gather_partial",
    # Configuration utilities
    "merge_configs",
    "load_pipeline_config",
]
