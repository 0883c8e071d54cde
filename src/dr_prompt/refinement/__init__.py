"""
Prompt refinement for a chosen target model.

This module provides:
- System instructions built from per-target rewrite rules
- A refinement client issuing one structured-output request per refinement
- A bounded, persisted history of successful refinements
- A session controller that discards results of superseded requests

Usage:
    from dr_prompt.refinement import (
        FileStorage,
        PromptRefiner,
        RefinementHistory,
        RefinementSession,
    )
    from dr_prompt.models import TargetModel

    history = RefinementHistory.from_storage(FileStorage("~/.dr_prompt"))
    async with PromptRefiner() as refiner:
        session = RefinementSession(refiner, history)
        await session.start_refine("write a poem about the sea", TargetModel.CLAUDE)
        print(session.result.refined_prompt)
"""

from .models import (
    GENERIC_ERROR_MESSAGE,
    REFINED_RESULT_SCHEMA,
    HistoryEntry,
    RefinedResult,
    RefinementConfig,
    RefinementError,
)
from .prompts import build_instruction
from .engine import PromptRefiner
from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .history import HISTORY_STORAGE_KEY, RefinementHistory
from .session import RefinementSession, SessionStatus

__all__ = [
    # Core
    "PromptRefiner",
    "RefinementConfig",
    "build_instruction",
    # Results
    "RefinedResult",
    "RefinementError",
    "REFINED_RESULT_SCHEMA",
    "GENERIC_ERROR_MESSAGE",
    # History
    "RefinementHistory",
    "HistoryEntry",
    "HISTORY_STORAGE_KEY",
    # Storage
    "KeyValueStorage",
    "FileStorage",
    "MemoryStorage",
    # Session
    "RefinementSession",
    "SessionStatus",
]
