"""Data models for Dr. Prompt."""

from dr_prompt.models.targets import (
    DEFAULT_TARGET,
    TARGET_CATALOG,
    RewriteRuleSet,
    TargetModel,
    TargetProfile,
    get_rule_set,
    get_target_profile,
    list_targets,
    parse_target,
)

__all__ = [
    # Targets
    "TargetModel",
    "TargetProfile",
    "RewriteRuleSet",
    "TARGET_CATALOG",
    "DEFAULT_TARGET",
    # Lookups
    "get_target_profile",
    "get_rule_set",
    "list_targets",
    "parse_target",
]
