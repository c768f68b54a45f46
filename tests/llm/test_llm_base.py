"""Tests for prompt building, response parsing and retries."""

import asyncio

import pytest

from statebot.errors import ConfigurationError, LLMResponseParseError, LLMServiceError
from statebot.llm.base import BaseLLMService, build_prompt, extract_json, parse_response

STATES = {"A": ["fact1"], "B": ["fact2", "fact3"]}

GOOD = '{"state": "A", "confidence": 0.9, "reasoning": "fact1 matches"}'


class ScriptedService(BaseLLMService):
    """Returns (or raises) scripted answers in order."""

    provider = "scripted"
    default_model = "scripted-1"

    def __init__(self, *answers, **kwargs):
        super().__init__("key", **kwargs)
        self.answers = list(answers)
        self.prompts: list[str] = []

    async def _complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    """Record backoff sleeps instead of waiting."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


class TestBuildPrompt:
    def test_lists_states_and_facts(self):
        prompt = build_prompt(STATES, ["fact2", "something else"])

        assert "## A\n- fact1" in prompt
        assert "## B\n- fact2\n- fact3" in prompt
        assert "# Current Facts:\n- fact2\n- something else" in prompt

    def test_asks_for_json_only(self):
        prompt = build_prompt(STATES, ["fact1"])

        assert '"state"' in prompt
        assert '"confidence"' in prompt
        assert '"reasoning"' in prompt
        assert "Respond ONLY with the JSON object" in prompt


class TestExtractJson:
    def test_fenced_block_wins(self):
        text = 'Sure {"not": "this"}\n```json\n{"state": "B"}\n```'
        assert extract_json(text) == '{"state": "B"}'

    def test_bare_object(self):
        assert extract_json(f"Here you go: {GOOD} done") == GOOD

    def test_no_json(self):
        assert extract_json("I cannot decide") is None


class TestParseResponse:
    def test_valid(self):
        response = parse_response(GOOD)

        assert response.state == "A"
        assert response.confidence == 0.9
        assert response.reasoning == "fact1 matches"

    def test_unknown_state_is_not_rejected_here(self):
        assert parse_response('{"state": "Z", "confidence": 0.5}').state == "Z"

    def test_no_json(self):
        with pytest.raises(LLMResponseParseError, match="Could not extract JSON"):
            parse_response("no idea", provider="claude")

    def test_malformed_json(self):
        with pytest.raises(LLMResponseParseError, match="Failed to parse"):
            parse_response('{"state": A}')

    def test_missing_state(self):
        with pytest.raises(LLMResponseParseError, match="missing 'state'"):
            parse_response('{"confidence": 0.9}')

    def test_bad_confidence(self):
        with pytest.raises(LLMResponseParseError, match="Invalid confidence"):
            parse_response('{"state": "A", "confidence": "high"}')

    def test_parse_error_is_service_error(self):
        with pytest.raises(LLMServiceError):
            parse_response("")

    @pytest.mark.parametrize("value", ["95", "-0.1", "1.01", "NaN", "Infinity"])
    def test_confidence_out_of_range(self, value):
        with pytest.raises(LLMResponseParseError, match="Confidence out of range"):
            parse_response(f'{{"state": "A", "confidence": {value}}}')

    def test_confidence_bounds_accepted(self):
        assert parse_response('{"state": "A", "confidence": 0}').confidence == 0
        assert parse_response('{"state": "A", "confidence": 1}').confidence == 1


class TestRetries:
    @pytest.mark.asyncio
    async def test_success_first_try(self, sleeps: list[float]):
        service = ScriptedService(GOOD)

        response = await service.determine_state(STATES, ["fact1"])

        assert response.state == "A"
        assert service.last_attempts == 1
        assert sleeps == []
        assert "- fact1" in service.prompts[0]

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self, sleeps: list[float]):
        service = ScriptedService(
            LLMServiceError("boom"), "garbage", GOOD, retry_count=3
        )

        response = await service.determine_state(STATES, ["fact1"])

        assert response.state == "A"
        assert service.last_attempts == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_raises_last_error_after_all_attempts(self, sleeps: list[float]):
        service = ScriptedService(
            LLMServiceError("first"), LLMServiceError("second"), retry_count=2
        )

        with pytest.raises(LLMServiceError, match="second"):
            await service.determine_state(STATES, ["fact1"])

        assert len(service.prompts) == 2
        # No sleep after the final attempt
        assert sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_single_attempt(self, sleeps: list[float]):
        service = ScriptedService(LLMServiceError("down"), retry_count=1)

        with pytest.raises(LLMServiceError):
            await service.determine_state(STATES, ["fact1"])

        assert sleeps == []

    def test_backoff_doubles(self):
        service = ScriptedService(retry_base_delay=0.25)

        assert [service.backoff_delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_retry_count_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="retry_count"):
            ScriptedService(retry_count=0)

    @pytest.mark.asyncio
    async def test_out_of_range_confidence_is_retried(self, sleeps: list[float]):
        service = ScriptedService('{"state": "A", "confidence": 95}', GOOD)

        response = await service.determine_state(STATES, ["fact1"])

        assert response.confidence == 0.9
        assert service.last_attempts == 2

    def test_default_model(self):
        assert ScriptedService().model == "scripted-1"
        assert ScriptedService(model="custom").model == "custom"
