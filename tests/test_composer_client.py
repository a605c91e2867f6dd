"""Tests for the AI blueprint client, using a fake OpenAI client."""
import json
from types import SimpleNamespace

import openai
import pytest

from synthforge.composer_client import (
    SYSTEM_PROMPT,
    ComposeRequest,
    ComposeRequestError,
    ComposerClient,
    parse_plan_content,
)


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(content=None, error=None):
    completions = FakeCompletions(content, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestComposeRequest:
    """Request validation and wire form."""

    def test_defaults_are_valid(self):
        ComposeRequest("dark hypnotic").validate()

    @pytest.mark.parametrize("kwargs", [
        {"prompt": ""},
        {"prompt": "x" * 501},
        {"prompt": "ok", "duration_bars": 8},
        {"prompt": "ok", "bpm_hint": 150},
        {"prompt": "ok", "style_hint": "peak_time"},
    ])
    def test_out_of_range(self, kwargs):
        with pytest.raises(ComposeRequestError):
            ComposeRequest(**kwargs).validate()

    def test_from_camel_case(self):
        request = ComposeRequest.from_dict({
            "prompt": "rolling", "durationBars": 96, "bpmHint": 124, "styleHint": "afterlife_anyma",
        })
        assert request.duration_bars == 96
        assert request.bpm_hint == 124
        assert request.to_dict()["styleHint"] == "afterlife_anyma"

    def test_user_message_mentions_parameters(self):
        text = ComposeRequest("journey", seed=7, duration_bars=64).user_message()
        assert '"journey"' in text
        assert "64 bars" in text
        assert "Seed for reproducibility: 7" in text


class TestComposerClient:
    """Outcomes of a compose call."""

    def test_valid_plan(self, settings, clock, valid_plan):
        client, completions = fake_openai(json.dumps(valid_plan))
        response = ComposerClient(settings, client, clock).compose(ComposeRequest("dark"))
        assert response.success
        assert response.plan.key == "A"
        call = completions.calls[0]
        assert call["model"] == settings.composer_model
        assert call["messages"][0]["content"] == SYSTEM_PROMPT
        assert call["response_format"] == {"type": "json_object"}

    def test_rate_limit(self, settings, clock, valid_plan):
        client, completions = fake_openai(json.dumps(valid_plan))
        composer = ComposerClient(settings, client, clock)
        assert composer.compose(ComposeRequest("one")).success

        clock.now += 1.0
        response = composer.compose(ComposeRequest("two"))
        assert not response.success
        assert response.error == "Rate limit exceeded. Please wait 2 seconds."
        assert len(completions.calls) == 1

        clock.now += 1.5
        assert composer.compose(ComposeRequest("three")).success
        assert len(completions.calls) == 2

    def test_invalid_json(self, settings, clock):
        client, _ = fake_openai("this is not json")
        response = ComposerClient(settings, client, clock).compose(ComposeRequest("dark"))
        assert not response.success
        assert response.error == "Invalid JSON response from AI"

    def test_empty_content(self, settings, clock):
        client, _ = fake_openai("")
        response = ComposerClient(settings, client, clock).compose(ComposeRequest("dark"))
        assert response.error == "Empty response from AI"

    def test_schema_violation(self, settings, clock, valid_plan):
        valid_plan["bpm"] = 90
        client, _ = fake_openai(json.dumps(valid_plan))
        response = ComposerClient(settings, client, clock).compose(ComposeRequest("dark"))
        assert not response.success
        assert "bpm" in response.error

    def test_invalid_request_is_not_sent(self, settings, clock):
        client, completions = fake_openai("{}")
        response = ComposerClient(settings, client, clock).compose(ComposeRequest(""))
        assert response.error.startswith("Invalid request")
        assert completions.calls == []

    def test_service_error(self, settings, clock):
        client, _ = fake_openai(error=openai.OpenAIError("upstream exploded"))
        response = ComposerClient(settings, client, clock).compose(ComposeRequest("dark"))
        assert response.error == "Failed to generate composition plan"

    def test_missing_key_error(self, settings, clock):
        client, _ = fake_openai(error=openai.OpenAIError("The api_key client option must be set"))
        response = ComposerClient(settings, client, clock).compose(ComposeRequest("dark"))
        assert response.error == "API configuration error"


def test_parse_plan_content(valid_plan):
    assert parse_plan_content(json.dumps(valid_plan)).success
    assert not parse_plan_content(json.dumps({"bpm": 124})).success
