"""Target model catalog: display metadata and rewrite rules per target."""

from dataclasses import dataclass
from enum import Enum


class TargetModel(str, Enum):
    """LLM personas a prompt can be refined for."""

    GEMINI = "Gemini"
    CHATGPT = "ChatGPT"
    CLAUDE = "Claude"
    GROK = "Grok"


@dataclass(frozen=True)
class RewriteRuleSet:
    """Optimization directives for one target model."""

    target_label: str  # e.g. "Google Gemini (Pro/Flash)"
    display_name: str
    rules: tuple[str, ...]


@dataclass(frozen=True)
class TargetProfile:
    """Display metadata plus the rule set for a target."""

    target: TargetModel
    name: str
    icon: str
    color: str
    description: str
    rule_set: RewriteRuleSet


# ============================================================================
# Rule tables
# ============================================================================

GEMINI_RULES = RewriteRuleSet(
    target_label="Google Gemini (Pro/Flash)",
    display_name="Gemini",
    rules=(
        "Structure & Formatting: Gemini excels with structured inputs. Use Markdown "
        "headers, clear sections, and bullet points.",
        "Context Window: Gemini has a massive context window. Encourage verbose, "
        "detailed context if the user provided it, but organize it well.",
        "Constraints: Be explicit about what NOT to do. Gemini adheres strictly to "
        "negative constraints.",
        "Safety: Frame the prompt safely to avoid triggering safety filters "
        "unnecessarily.",
        "Output Format: Define the expected output format clearly (e.g. \"Return a "
        "JSON list...\", \"Write a blog post...\").",
    ),
)

CHATGPT_RULES = RewriteRuleSet(
    target_label="OpenAI ChatGPT (GPT-4o/o1)",
    display_name="ChatGPT",
    rules=(
        "Persona Adoption: Start with \"Act as a [Role]...\" or \"You are an expert "
        "in...\". A persona primes the model effectively.",
        "Chain-of-Thought: For complex tasks, explicitly add \"Think step-by-step\" or "
        "\"Explain your reasoning before giving the final answer.\"",
        "Delimiters: Use delimiters like triple quotes (\"\"\") or separators to clearly "
        "distinguish input data from instructions.",
        "Conversational Tone: ChatGPT optimizes for chat. Natural language "
        "instructions are fine but must remain precise.",
        "Clarity: Remove ambiguity. If constraints are needed, list them at the end.",
    ),
)

CLAUDE_RULES = RewriteRuleSet(
    target_label="Anthropic Claude (3.5 Sonnet / 3.7)",
    display_name="Claude",
    rules=(
        "XML Tags: THIS IS CRITICAL. Claude pays special attention to XML tags. "
        "Enclose context in <context>, data in <data>, and instructions in "
        "<instructions>.",
        "No Fluff: Prefer direct, logical instructions over \"Act as...\" personas. "
        "Prioritize functional descriptions.",
        "Prefill: If the prompt asks for code, suggest starting the response with "
        "the opening code fence for the language (e.g. ```python).",
        "Thinking: For complex logic, ask it to think in <thinking> tags before "
        "giving the final answer in <answer> tags.",
        "Separation: Keep instructions distinct from the content to be processed, "
        "using tag-based separation.",
    ),
)

GROK_RULES = RewriteRuleSet(
    target_label="xAI Grok",
    display_name="Grok",
    rules=(
        "Directness: Grok prefers a no-nonsense approach. Cut the preamble.",
        "Style: Grok handles \"spicy\" or \"witty\" requests. If the user's prompt "
        "implies a casual tone, lean into it.",
        "Real-time Info: If the prompt relies on current events, explicitly ask "
        "Grok for the latest data.",
        "Robustness: Grok is less restrictive. Be direct with controversial topics "
        "(within safety reason) and avoid preachy disclaimers.",
    ),
)


TARGET_CATALOG: dict[TargetModel, TargetProfile] = {
    TargetModel.GEMINI: TargetProfile(
        target=TargetModel.GEMINI,
        name="Gemini",
        icon="Sparkles",
        color="from-blue-500 to-purple-500",
        description="Optimized for Google's multimodal architecture.",
        rule_set=GEMINI_RULES,
    ),
    TargetModel.CHATGPT: TargetProfile(
        target=TargetModel.CHATGPT,
        name="ChatGPT",
        icon="Bot",
        color="from-green-500 to-emerald-600",
        description="Tailored for OpenAI's conversational style.",
        rule_set=CHATGPT_RULES,
    ),
    TargetModel.CLAUDE: TargetProfile(
        target=TargetModel.CLAUDE,
        name="Claude",
        icon="Brain",
        color="from-orange-500 to-amber-600",
        description="Formatted with XML tags for Anthropic's logic.",
        rule_set=CLAUDE_RULES,
    ),
    TargetModel.GROK: TargetProfile(
        target=TargetModel.GROK,
        name="Grok",
        icon="Zap",
        color="from-slate-100 to-slate-400",
        description="Direct and witty style for xAI.",
        rule_set=GROK_RULES,
    ),
}

DEFAULT_TARGET = TargetModel.GEMINI


def parse_target(value: "TargetModel | str") -> TargetModel:
    """
    Coerce a string (case-insensitive) or enum member to a TargetModel.

    Raises:
        ValueError: If the value names no supported target
    """
    if isinstance(value, TargetModel):
        return value

    lookup = {t.value.lower(): t for t in TargetModel}
    target = lookup.get(str(value).strip().lower())
    if target is None:
        raise ValueError(
            f"Unknown target model: {value}. "
            f"Supported targets: {[t.value for t in TargetModel]}"
        )
    return target


def get_target_profile(target: TargetModel) -> TargetProfile:
    """Get the catalog entry for a target."""
    return TARGET_CATALOG[target]


def get_rule_set(target: TargetModel) -> RewriteRuleSet:
    """Get the rewrite rules for a target."""
    return TARGET_CATALOG[target].rule_set


def list_targets() -> list[TargetProfile]:
    """List all target profiles in declaration order."""
    return [TARGET_CATALOG[t] for t in TargetModel]
