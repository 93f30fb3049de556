"""
Trigger and node configuration normalization services.
"""
from .trigger_normalizer import (
    default_trigger_configuration,
    derive_from_mirror,
    derive_payload,
    normalize,
    parse_trigger_configuration,
    to_legacy_mirror,
)
from .config_parsers import (
    condition_config_from_meta,
    condition_config_or_default,
    experiment_config_or_default,
    fixed_delay_config,
    goal_config_or_none,
    normalized_allocations,
    parse_action_payload,
    parse_condition_config,
    parse_delay_config,
    parse_experiment_config,
    parse_goal_config,
    validate_experiment,
)

__all__ = [
    "default_trigger_configuration",
    "derive_from_mirror",
    "derive_payload",
    "normalize",
    "parse_trigger_configuration",
    "to_legacy_mirror",
    "condition_config_from_meta",
    "condition_config_or_default",
    "experiment_config_or_default",
    "fixed_delay_config",
    "goal_config_or_none",
    "parse_action_payload",
    "normalized_allocations",
    "parse_condition_config",
    "parse_delay_config",
    "parse_experiment_config",
    "parse_goal_config",
    "validate_experiment",
]
