"""
Track Session Module

Single owner of the TrackConfig. Regeneration and edits are serialized
through a busy flag; AI compose requests run on a one-thread executor
and only the most recent request may change the configuration.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from .arranger import Arranger, Composition
from .blueprint import BlueprintError, ComposeResponse, apply_blueprint
from .composer_client import ComposeRequest, ComposerClient
from .config import EngineSettings, SectionConfig, TrackConfig
from .randomize import randomize_all
from .utils import ConfigurationError

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    """Raised when an edit or regeneration overlaps one already in flight."""


@dataclass
class ComposeOutcome:
    """What happened to one AI compose request."""
    request_id: int
    response: ComposeResponse
    applied: bool = False
    superseded: bool = False

    @property
    def error(self) -> Optional[str]:
        return self.response.error


class TrackSession:
    """
    Serializes every mutation of one track's configuration.

    Usage:
        session = TrackSession()
        composition = session.regenerate(seed=42)
        future = session.compose_with_ai(ComposeRequest("dark hypnotic"))
        outcome = future.result()
    """

    def __init__(
        self,
        config: Optional[TrackConfig] = None,
        client: Optional[ComposerClient] = None,
        arranger: Optional[Arranger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or EngineSettings.from_env()
        self._config = config or TrackConfig()
        self._client = client
        self._arranger = arranger or Arranger()
        self._busy = threading.Lock()
        self._ids = itertools.count(1)
        self._latest_request = 0
        self._request_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="synthforge-compose")
        self.last_composition: Optional[Composition] = None
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> TrackConfig:
        return self._config

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    @property
    def client(self) -> ComposerClient:
        if self._client is None:
            self._client = ComposerClient(self.settings)
        return self._client

    @contextmanager
    def _exclusive(self, blocking: bool = False) -> Iterator[None]:
        if not self._busy.acquire(blocking=blocking):
            raise SessionBusyError("A regeneration or compose is already in progress")
        try:
            yield
        finally:
            self._busy.release()

    # ------------------------------------------------------------------
    # Regeneration
    # ------------------------------------------------------------------

    def regenerate(self, seed: Optional[int] = None) -> Composition:
        """
        Run the whole composition pipeline.

        Raises:
            SessionBusyError: another regeneration or blueprint apply holds the session
        """
        seed = self.settings.base_seed if seed is None else seed
        with self._exclusive():
            composition = self._arranger.compose(self._config, seed)
            self.last_composition = composition
            return composition

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def edit(self, mutate: Callable[[TrackConfig], Any]) -> Any:
        """Apply a mutation to the configuration, refused while busy."""
        with self._exclusive():
            return mutate(self._config)

    def set_value(self, name: str, value: Any) -> None:
        self.edit(lambda config: config.set_value(name, value))

    def update_instrument(self, instrument: str, **params: Any) -> None:
        self.edit(lambda config: config.update_instrument(instrument, **params))

    def update_section(self, index: int, **changes: Any) -> None:
        self.edit(lambda config: config.update_section(index, **changes))

    def add_section(self, section: SectionConfig) -> None:
        self.edit(lambda config: config.add_section(section))

    def remove_section(self, index: int) -> None:
        self.edit(lambda config: config.remove_section(index))

    def randomize(self, seed: Optional[int] = None) -> TrackConfig:
        with self._exclusive():
            self._config = randomize_all(self._config, seed)
            return self._config

    # ------------------------------------------------------------------
    # AI compose
    # ------------------------------------------------------------------

    def compose_with_ai(self, request: ComposeRequest) -> 'Future[ComposeOutcome]':
        """
        Submit a blueprint request.

        Each request gets a new id; when it resolves, its plan is applied
        only if no newer request was submitted in the meantime.
        """
        with self._request_lock:
            request_id = next(self._ids)
            self._latest_request = request_id
        logger.debug("Submitting compose request %d", request_id)
        return self._executor.submit(self._run_compose, request_id, request)

    def _is_latest(self, request_id: int) -> bool:
        with self._request_lock:
            return request_id == self._latest_request

    def _run_compose(self, request_id: int, request: ComposeRequest) -> ComposeOutcome:
        try:
            response = self.client.compose(request)
        except Exception as e:
            logger.exception("Compose request %d raised", request_id)
            response = ComposeResponse(False, error=f"Composer failed: {e}")
        if not self._is_latest(request_id):
            logger.info("Ignoring superseded compose request %d", request_id)
            return ComposeOutcome(request_id, response, superseded=True)
        if not response.success or response.plan is None:
            self.last_error = response.error
            logger.warning("Compose request %d failed: %s", request_id, response.error)
            return ComposeOutcome(request_id, response)

        # Waits for any regeneration in flight, then applies atomically
        with self._exclusive(blocking=True):
            if not self._is_latest(request_id):
                return ComposeOutcome(request_id, response, superseded=True)
            try:
                updated = apply_blueprint(response.plan, self._config)
            except (BlueprintError, ConfigurationError) as e:
                self.last_error = str(e)
                logger.warning("Compose request %d produced an unusable plan: %s", request_id, e)
                return ComposeOutcome(request_id, ComposeResponse(False, error=str(e)))
            self._config = updated
            self.last_error = None
        updated.notify('blueprint', response.plan)
        return ComposeOutcome(request_id, response, applied=True)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> 'TrackSession':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
