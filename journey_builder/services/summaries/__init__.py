"""
Configuration summary helpers.
"""
from .summarizer import (
    format_duration,
    format_time_of_day,
    summarize_action,
    summarize_condition,
    summarize_delay,
    summarize_experiment,
    summarize_goal,
    summarize_trigger,
)

__all__ = [
    "format_duration",
    "format_time_of_day",
    "summarize_action",
    "summarize_condition",
    "summarize_delay",
    "summarize_experiment",
    "summarize_goal",
    "summarize_trigger",
]
