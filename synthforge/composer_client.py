"""
Composer Client

Asks an OpenAI chat model for a producer blueprint (ComposerPlan) and
turns every outcome into a ComposeResponse. Network, quota and parsing
failures are reported as success=False; nothing here raises into the
composition pipeline.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import openai

from .blueprint import STYLE_HINTS, BlueprintError, ComposeResponse, ComposerPlan
from .config import EngineSettings

logger = logging.getLogger(__name__)

PROMPT_LENGTH = (1, 500)
DURATION_BARS = (16, 256)
BPM_HINT = (100, 140)
DEFAULT_DURATION_BARS = 128

SYSTEM_PROMPT = """You are a melodic techno producer in the Afterlife style. \
Return ONLY valid JSON following the ComposerPlan schema.

PRODUCTION PRIORITIES:
- Deep, dark, underground bass
- Restrained emotion, never explosive
- Slow, cinematic progression
- Few simultaneous elements (4 at most, 5 only in drops)
- Hypnotic repetition with micro-evolution

MELODY RULES:
- Sparse and memorable: 2-5 notes per phrase
- A 4-8 bar phrase that repeats
- Vary with filter and reverb, NOT with new notes

BASS RULES:
- Long notes plus filter movement
- NO walking bass

RHYTHM RULES:
- Hi-hats on the offbeat with subtle swing
- Kick four on the floor, clean
- Clap or rim on 2 and 4, subtle

BASE STRUCTURE (adjustable):
- Intro 16-32 bars (pad and strings, no rhythm)
- Groove 16-32 bars (kick, bass, hats)
- Pre-drop 2 bars near-silence (pad/FX only)
- Drop 32-64 bars (5 layers at most)
- Breakdown 16 bars (no kick, emotional)
- Build 16 bars (kick returns, tension)
- Outro 16 bars (elements leave)

PREFERRED SCALES: minor, phrygian, harmonicMinor
PREFERRED KEYS: A, D, F#, C, G, E
BPM: 122-124 ideal

The JSON object has exactly these keys: style, bpm, key, scale, groove, \
energy_curve, global_rules, sections, instrument_targets."""


class ComposeRequestError(ValueError):
    """Raised when a compose request is out of range."""


@dataclass
class ComposeRequest:
    """
    Attributes:
        prompt: Free-text description, 1-500 characters
        seed: Optional seed forwarded for reproducibility
        duration_bars: Intended track length, 16-256 bars
        bpm_hint: Optional tempo hint, 100-140
        style_hint: Optional producer style reference
    """
    prompt: str
    seed: Optional[int] = None
    duration_bars: int = DEFAULT_DURATION_BARS
    bpm_hint: Optional[int] = None
    style_hint: Optional[str] = None

    def validate(self) -> None:
        problems: List[str] = []
        if not isinstance(self.prompt, str) or not PROMPT_LENGTH[0] <= len(self.prompt) <= PROMPT_LENGTH[1]:
            problems.append(f"prompt must be {PROMPT_LENGTH[0]}-{PROMPT_LENGTH[1]} characters")
        if not DURATION_BARS[0] <= self.duration_bars <= DURATION_BARS[1]:
            problems.append(f"durationBars must be within {DURATION_BARS[0]}-{DURATION_BARS[1]}")
        if self.bpm_hint is not None and not BPM_HINT[0] <= self.bpm_hint <= BPM_HINT[1]:
            problems.append(f"bpmHint must be within {BPM_HINT[0]}-{BPM_HINT[1]}")
        if self.style_hint is not None and self.style_hint not in STYLE_HINTS:
            problems.append(f"styleHint must be one of {', '.join(STYLE_HINTS)}")
        if problems:
            raise ComposeRequestError(', '.join(problems))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ComposeRequest':
        """Build from the camelCase wire form."""
        request = cls(
            prompt=data.get('prompt', ''),
            seed=data.get('seed'),
            duration_bars=int(data.get('durationBars', DEFAULT_DURATION_BARS)),
            bpm_hint=data.get('bpmHint'),
            style_hint=data.get('styleHint'),
        )
        request.validate()
        return request

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'prompt': self.prompt, 'durationBars': self.duration_bars}
        if self.seed is not None:
            result['seed'] = self.seed
        if self.bpm_hint is not None:
            result['bpmHint'] = self.bpm_hint
        if self.style_hint is not None:
            result['styleHint'] = self.style_hint
        return result

    def user_message(self) -> str:
        lines = [
            f'Write a musical plan for: "{self.prompt}"',
            '',
            'Parameters:',
            f'- Approximate total length: {self.duration_bars} bars',
            f'- Suggested BPM: {self.bpm_hint}' if self.bpm_hint else '- BPM: choose between 122 and 124',
            f'- Style: {self.style_hint or "afterlife_kast"}',
        ]
        if self.seed is not None:
            lines.append(f'- Seed for reproducibility: {self.seed}')
        lines += [
            '',
            'Make sure that:',
            f'1. The bars of all sections add up to roughly {self.duration_bars}',
            '2. energy_curve has one value per section',
            '3. instrument_targets favours dark, warm parameters',
            '4. At most 4 layers per section (5 in drops)',
            '5. silence_before_drop is true when there is a 2-bar pre-drop',
        ]
        return '\n'.join(lines)


class ComposerClient:
    """
    Blueprint service client.

    The OpenAI client is created lazily from EngineSettings unless one is
    injected. Requests closer together than `request_interval` seconds are
    refused without contacting the service.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        client: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or EngineSettings.from_env()
        self._client = client
        self._clock = clock
        self._last_request: Optional[float] = None
        self._lock = threading.Lock()

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.request_timeout,
            )
        return self._client

    def _acquire_slot(self) -> bool:
        with self._lock:
            now = self._clock()
            if self._last_request is not None and now - self._last_request < self.settings.request_interval:
                return False
            self._last_request = now
            return True

    def compose(self, request: ComposeRequest) -> ComposeResponse:
        """Request a plan. Always returns; failures come back as success=False."""
        try:
            request.validate()
        except ComposeRequestError as e:
            return ComposeResponse(False, error=f"Invalid request: {e}")

        if not self._acquire_slot():
            return ComposeResponse(
                False, error=f"Rate limit exceeded. Please wait {self.settings.request_interval:g} seconds.")

        try:
            content = self._complete(request)
        except openai.AuthenticationError:
            logger.error("Blueprint request rejected: authentication failed")
            return ComposeResponse(False, error="API configuration error")
        except openai.RateLimitError:
            logger.warning("Blueprint service rate limit exceeded")
            return ComposeResponse(False, error="AI service rate limit exceeded")
        except openai.APIConnectionError as e:
            logger.error("Blueprint service unreachable: %s", e)
            return ComposeResponse(False, error="AI service unreachable")
        except openai.OpenAIError as e:
            logger.error("Blueprint request failed: %s", e)
            if 'api key' in str(e).lower() or 'api_key' in str(e).lower():
                return ComposeResponse(False, error="API configuration error")
            return ComposeResponse(False, error="Failed to generate composition plan")

        if not content:
            logger.error("Empty response from blueprint service")
            return ComposeResponse(False, error="Empty response from AI")
        return parse_plan_content(content)

    def _complete(self, request: ComposeRequest) -> Optional[str]:
        response = self._get_client().chat.completions.create(
            model=self.settings.composer_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": request.user_message()},
            ],
            response_format={"type": "json_object"},
            max_completion_tokens=4000,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content


def parse_plan_content(content: str) -> ComposeResponse:
    """Decode and validate the model's JSON reply."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        logger.error("Invalid JSON from blueprint service: %s", content[:200])
        return ComposeResponse(False, error="Invalid JSON response from AI")
    try:
        plan = ComposerPlan.from_dict(data, partial=False)
    except BlueprintError as e:
        logger.error("Blueprint failed validation: %s", e)
        return ComposeResponse(False, error=str(e))
    return ComposeResponse(True, plan=plan)
