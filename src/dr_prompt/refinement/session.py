"""Session controller tying user actions to the refiner and the history."""

import logging
from enum import Enum
from typing import Optional

from dr_prompt.models.targets import DEFAULT_TARGET, TargetModel, parse_target

from .engine import PromptRefiner
from .history import RefinementHistory
from .models import GENERIC_ERROR_MESSAGE, HistoryEntry, RefinedResult, RefinementError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Lifecycle of the current refinement."""

    IDLE = "idle"
    REFINING = "refining"
    SUCCEEDED = "succeeded"  # Idle with a result on display
    FAILED = "failed"  # Idle with an error on display


class RefinementSession:
    """
    Holds what the user sees (prompt, target, result, error) and drives refinements.

    Each refinement is tagged with a sequence number. Only the most recent
    request may update state; results of superseded requests are discarded.

    Usage:
        session = RefinementSession(refiner, history)
        await session.start_refine("write a poem about the sea", TargetModel.CLAUDE)
        if session.status == SessionStatus.SUCCEEDED:
            print(session.result.refined_prompt)
    """

    def __init__(
        self,
        refiner: PromptRefiner,
        history: RefinementHistory,
        default_target: TargetModel = DEFAULT_TARGET,
    ):
        self.refiner = refiner
        self.history = history

        self.prompt: str = ""
        self.target: TargetModel = default_target
        self.result: Optional[RefinedResult] = None
        self.error: Optional[str] = None
        self.status = SessionStatus.IDLE

        self._request_seq = 0
        self._active_request: Optional[int] = None

    @property
    def is_loading(self) -> bool:
        return self.status == SessionStatus.REFINING

    @property
    def history_entries(self) -> tuple[HistoryEntry, ...]:
        return self.history.entries

    def _is_current(self, request_id: int) -> bool:
        return self._active_request == request_id

    def _settle(self) -> None:
        """An edit returns a finished refinement to idle."""
        if self.status != SessionStatus.REFINING:
            self.status = SessionStatus.IDLE
            self.error = None

    def set_prompt(self, text: str) -> None:
        """Replace the prompt text."""
        self.prompt = text
        self._settle()

    def set_target(self, target: TargetModel | str) -> None:
        """Select the target model."""
        self.target = parse_target(target)
        self._settle()

    async def start_refine(
        self,
        prompt: Optional[str] = None,
        target: Optional[TargetModel | str] = None,
    ) -> Optional[RefinedResult]:
        """
        Refine the current prompt for the current target.

        Args:
            prompt: Replaces the current prompt first, if given
            target: Replaces the current target first, if given

        Returns:
            The result if this request succeeded and is still current, else None
        """
        if prompt is not None:
            self.prompt = prompt
        if target is not None:
            self.target = parse_target(target)

        text = self.prompt
        if not text.strip():
            logger.debug("Ignoring refine request with an empty prompt")
            return None

        self._request_seq += 1
        request_id = self._request_seq
        self._active_request = request_id
        request_target = self.target

        self.status = SessionStatus.REFINING
        self.error = None
        self.result = None

        try:
            result = await self.refiner.refine(text, request_target)
        except RefinementError as e:
            if not self._is_current(request_id):
                logger.debug(f"Discarding failure of stale request #{request_id}")
                return None
            logger.error(f"Refinement #{request_id} failed ({e.kind}): {e}")
            self._active_request = None
            self.error = GENERIC_ERROR_MESSAGE
            self.status = SessionStatus.FAILED
            return None
        except Exception:
            if self._is_current(request_id):
                self._active_request = None
                self.error = GENERIC_ERROR_MESSAGE
                self.status = SessionStatus.FAILED
            raise

        if not self._is_current(request_id):
            logger.debug(f"Discarding result of stale request #{request_id}")
            return None

        self._active_request = None
        self.result = result
        self.status = SessionStatus.SUCCEEDED
        self.history.record(text, request_target, result)
        return result

    def clear(self) -> None:
        """Reset prompt, result and error; any in-flight result will be discarded."""
        self._active_request = None
        self.prompt = ""
        self.result = None
        self.error = None
        self.status = SessionStatus.IDLE

    def select_from_history(self, entry: HistoryEntry) -> None:
        """Restore a past refinement without issuing a request."""
        self._active_request = None
        self.prompt = entry.original_prompt
        self.target = entry.target_model
        self.result = entry.result
        self.error = None
        self.status = SessionStatus.SUCCEEDED

    def delete_history_entry(self, entry_id: str) -> bool:
        """Delete one history entry."""
        return self.history.remove(entry_id)

    def clear_history(self) -> None:
        """Delete all history. Callers obtain user confirmation first."""
        self.history.clear_all()
