"""Tests for the refinement session controller."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from dr_prompt.llm.providers.base import LLMResponse, TokenUsage
from dr_prompt.models.targets import TargetModel
from dr_prompt.refinement.engine import PromptRefiner
from dr_prompt.refinement.history import RefinementHistory
from dr_prompt.refinement.models import (
    GENERIC_ERROR_MESSAGE,
    RefinedResult,
    RefinementConfig,
    RefinementError,
)
from dr_prompt.refinement.session import RefinementSession, SessionStatus
from dr_prompt.refinement.storage import MemoryStorage

RESULT_A = RefinedResult(refined_prompt="A", explanation="first")
RESULT_B = RefinedResult(refined_prompt="B", explanation="second")


class ControlledRefiner:
    """Refiner whose responses are released by the test."""

    def __init__(self):
        self.calls = []

    async def refine(self, original_prompt, target):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((original_prompt, target, future))
        return await future


def make_provider(content: str) -> MagicMock:
    provider = MagicMock()
    provider.complete = AsyncMock(
        return_value=LLMResponse(content=content, model="gemini-2.5-flash", usage=TokenUsage())
    )
    return provider


@pytest.fixture
def history():
    return RefinementHistory(MemoryStorage())


class TestInitialState:
    """Tests for a fresh session."""

    def test_defaults(self, history):
        session = RefinementSession(ControlledRefiner(), history)
        assert session.prompt == ""
        assert session.target == TargetModel.GEMINI
        assert session.result is None
        assert session.error is None
        assert session.status == SessionStatus.IDLE
        assert session.is_loading is False


class TestStartRefine:
    """Tests for start_refine."""

    @pytest.mark.asyncio
    async def test_claude_scenario(self, history):
        """A Claude refinement is shown and becomes the newest history entry."""
        provider = make_provider(
            '{"refinedPrompt":"<instructions>...</instructions>","explanation":"Used tags"}'
        )
        refiner = PromptRefiner(RefinementConfig(), provider=provider)
        session = RefinementSession(refiner, history)

        result = await session.start_refine("write a poem about the sea", TargetModel.CLAUDE)

        assert result.refined_prompt == "<instructions>...</instructions>"
        assert session.status == SessionStatus.SUCCEEDED
        assert session.result == result
        assert session.error is None
        newest = history.entries[0]
        assert newest.original_prompt == "write a poem about the sea"
        assert newest.target_model == TargetModel.CLAUDE
        assert newest.result == result

    @pytest.mark.asyncio
    async def test_empty_payload_fails(self, history):
        """An empty payload fails with the generic message and no history change."""
        refiner = PromptRefiner(RefinementConfig(), provider=make_provider(""))
        session = RefinementSession(refiner, history)

        result = await session.start_refine("write a poem", TargetModel.GEMINI)

        assert result is None
        assert session.status == SessionStatus.FAILED
        assert session.error == GENERIC_ERROR_MESSAGE
        assert session.result is None
        assert len(history) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["null", "[]", '"text"', "42"])
    async def test_non_object_payload_fails(self, history, content):
        """Well-formed JSON that is not an object fails like any other decode error."""
        refiner = PromptRefiner(RefinementConfig(), provider=make_provider(content))
        session = RefinementSession(refiner, history)

        result = await session.start_refine("write a poem", TargetModel.CLAUDE)

        assert result is None
        assert session.status == SessionStatus.FAILED
        assert session.error == GENERIC_ERROR_MESSAGE
        assert session.result is None
        assert len(history) == 0

    @pytest.mark.asyncio
    async def test_transport_failure(self, history):
        """A provider error yields the generic message."""
        provider = MagicMock()
        provider.complete = AsyncMock(side_effect=ConnectionError("offline"))
        session = RefinementSession(PromptRefiner(provider=provider), history)

        await session.start_refine("p")

        assert session.status == SessionStatus.FAILED
        assert session.error == GENERIC_ERROR_MESSAGE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
    async def test_blank_prompt_is_noop(self, history, prompt):
        """Whitespace-only prompts issue no request."""
        refiner = ControlledRefiner()
        session = RefinementSession(refiner, history)

        assert await session.start_refine(prompt) is None
        assert refiner.calls == []
        assert session.status == SessionStatus.IDLE

    @pytest.mark.asyncio
    async def test_prompt_sent_verbatim(self, history):
        """The prompt is not trimmed before sending."""
        refiner = ControlledRefiner()
        session = RefinementSession(refiner, history)

        task = asyncio.create_task(session.start_refine("  spaced  ", "grok"))
        await asyncio.sleep(0)

        assert session.is_loading is True
        assert refiner.calls[0][0] == "  spaced  "
        assert refiner.calls[0][1] == TargetModel.GROK

        refiner.calls[0][2].set_result(RESULT_A)
        await task
        assert history.entries[0].original_prompt == "  spaced  "

    @pytest.mark.asyncio
    async def test_new_refine_clears_previous(self, history):
        """Starting a refinement clears the previous result and error."""
        refiner = ControlledRefiner()
        session = RefinementSession(refiner, history)
        session.result = RESULT_A
        session.error = GENERIC_ERROR_MESSAGE

        task = asyncio.create_task(session.start_refine("p"))
        await asyncio.sleep(0)

        assert session.result is None
        assert session.error is None
        assert session.status == SessionStatus.REFINING

        refiner.calls[0][2].set_result(RESULT_B)
        await task

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, history):
        """Errors outside RefinementError mark failure and propagate."""
        refiner = MagicMock()
        refiner.refine = AsyncMock(side_effect=KeyError("bug"))
        session = RefinementSession(refiner, history)

        with pytest.raises(KeyError):
            await session.start_refine("p")

        assert session.status == SessionStatus.FAILED


class TestStaleRequests:
    """Only the latest request may update the session."""

    @pytest.mark.asyncio
    async def test_stale_success_discarded(self, history):
        """A late first response does not overwrite the second."""
        refiner = ControlledRefiner()
        session = RefinementSession(refiner, history)

        first = asyncio.create_task(session.start_refine("first", TargetModel.GEMINI))
        await asyncio.sleep(0)
        second = asyncio.create_task(session.start_refine("second", TargetModel.CLAUDE))
        await asyncio.sleep(0)
        assert len(refiner.calls) == 2

        refiner.calls[1][2].set_result(RESULT_B)
        assert await second == RESULT_B

        refiner.calls[0][2].set_result(RESULT_A)
        assert await first is None

        assert session.result == RESULT_B
        assert session.status == SessionStatus.SUCCEEDED
        assert [e.original_prompt for e in history.entries] == ["second"]

    @pytest.mark.asyncio
    async def test_stale_failure_discarded(self, history):
        """A late failure of a superseded request is ignored."""
        refiner = ControlledRefiner()
        session = RefinementSession(refiner, history)

        first = asyncio.create_task(session.start_refine("first"))
        await asyncio.sleep(0)
        second = asyncio.create_task(session.start_refine("second"))
        await asyncio.sleep(0)

        refiner.calls[0][2].set_exception(RefinementError("boom"))
        assert await first is None
        assert session.status == SessionStatus.REFINING
        assert session.error is None

        refiner.calls[1][2].set_result(RESULT_B)
        await second
        assert session.status == SessionStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_clear_discards_in_flight(self, history):
        """Clearing the session drops the pending result."""
        refiner = ControlledRefiner()
        session = RefinementSession(refiner, history)

        task = asyncio.create_task(session.start_refine("p"))
        await asyncio.sleep(0)
        session.clear()

        refiner.calls[0][2].set_result(RESULT_A)
        assert await task is None
        assert session.result is None
        assert session.prompt == ""
        assert session.status == SessionStatus.IDLE
        assert len(history) == 0


class TestEditsAndHistory:
    """Tests for prompt/target edits and history actions."""

    @pytest.mark.asyncio
    async def test_edit_settles_failure(self, history):
        """Editing after a failure returns to idle and clears the error."""
        refiner = PromptRefiner(provider=make_provider(""))
        session = RefinementSession(refiner, history)
        await session.start_refine("p")
        assert session.status == SessionStatus.FAILED

        session.set_prompt("p2")

        assert session.status == SessionStatus.IDLE
        assert session.error is None

    def test_set_target_accepts_string(self, history):
        session = RefinementSession(ControlledRefiner(), history)
        session.set_target("ChatGPT")
        assert session.target == TargetModel.CHATGPT

    def test_select_from_history(self, history):
        """Selecting an entry restores it without a request."""
        refiner = ControlledRefiner()
        entry = history.record("old prompt", TargetModel.GROK, RESULT_A)
        session = RefinementSession(refiner, history)

        session.select_from_history(entry)

        assert session.prompt == "old prompt"
        assert session.target == TargetModel.GROK
        assert session.result == RESULT_A
        assert session.status == SessionStatus.SUCCEEDED
        assert refiner.calls == []
        assert len(history) == 1

    def test_delete_and_clear_history(self, history):
        session = RefinementSession(ControlledRefiner(), history)
        keep = history.record("keep", TargetModel.GEMINI, RESULT_A)
        drop = history.record("drop", TargetModel.GEMINI, RESULT_B)

        assert session.delete_history_entry(drop.id) is True
        assert session.history_entries == (keep,)

        session.clear_history()
        assert session.history_entries == ()
