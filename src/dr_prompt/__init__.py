"""Dr. Prompt: rewrite prompts for the quirks of a target LLM."""

__version__ = "0.1.0"
