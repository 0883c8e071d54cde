"""System instruction templates for prompt refinement."""

import logging

from dr_prompt.models.targets import (
    DEFAULT_TARGET,
    TARGET_CATALOG,
    RewriteRuleSet,
    TargetModel,
)

logger = logging.getLogger(__name__)


# Shared preamble for every target
REFINEMENT_PREAMBLE = """You are Dr. Prompt, a world-class prompt engineer expert in the nuances of Large Language Models.

Your task is to rewrite the user's raw prompt into a highly optimized prompt specifically tailored for the architecture and fine-tuning quirks of the target model: {target_name}."""

# Output contract; must agree with REFINED_RESULT_SCHEMA
OUTPUT_CONTRACT = """Output must be a JSON object containing exactly two string fields:
1. 'refinedPrompt': The rewritten, optimized prompt.
2. 'explanation': A brief, bullet-point explanation of what techniques you used (e.g., "Added XML tags for Claude stability").
Do not include any other fields."""


def render_rule_block(rule_set: RewriteRuleSet) -> str:
    """Render a rule set as an enumerated list under a target header."""
    lines = [
        f"TARGET MODEL: {rule_set.target_label}",
        "SPECIFIC OPTIMIZATION RULES:",
    ]
    for i, rule in enumerate(rule_set.rules, 1):
        lines.append(f"{i}. {rule}")
    return "\n".join(lines)


def build_instruction(target: TargetModel) -> str:
    """
    Build the system instruction for refining a prompt for ``target``.

    The instruction is the shared preamble, the target's rules and the
    output contract, in that order. An unknown target falls back to the
    default target's rules.

    Args:
        target: The model the refined prompt is written for

    Returns:
        The system instruction text
    """
    profile = TARGET_CATALOG.get(target)
    if profile is None:
        logger.warning(f"Unknown target {target!r}, using {DEFAULT_TARGET.value} rules")
        profile = TARGET_CATALOG[DEFAULT_TARGET]

    preamble = REFINEMENT_PREAMBLE.format(target_name=profile.rule_set.display_name)
    return "\n\n".join([
        preamble,
        render_rule_block(profile.rule_set),
        OUTPUT_CONTRACT,
    ])
