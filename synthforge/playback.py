"""
Playback Boundary

The composition core never makes sound. A SynthBackend receives whole
per-instrument event streams ahead of time (look-ahead scheduling) and
places them on its own clock. Backends follow parameter edits by
subscribing to the TrackConfig change events.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from .arranger import Composition
from .config import ParameterChange, TrackConfig
from .events import NoteEvent
from .utils import normalize_key

logger = logging.getLogger(__name__)

Notes = Union[str, Sequence[str]]


class SynthBackend(ABC):
    """
    Interface a synthesis engine implements to play a composition.

    `time` arguments are seconds on the backend's clock; None means now.
    """

    @abstractmethod
    def play_kick(self, time: Optional[float] = None, velocity: float = 1.0) -> None:
        ...

    @abstractmethod
    def play_bass(self, note: str, duration: str, time: Optional[float] = None,
                  velocity: float = 1.0) -> None:
        ...

    @abstractmethod
    def play_melody(self, note: Notes, duration: str, time: Optional[float] = None,
                    velocity: float = 1.0) -> None:
        ...

    @abstractmethod
    def play_hihat(self, time: Optional[float] = None, velocity: float = 1.0,
                   open: bool = False) -> None:
        ...

    @abstractmethod
    def play_pad(self, notes: Sequence[str], duration: str, time: Optional[float] = None) -> None:
        ...

    @abstractmethod
    def schedule_pattern(self, events: Sequence[NoteEvent], instrument: str,
                         start_offset: float = 0.0) -> None:
        """Queue an instrument's events, `start_offset` seconds after transport start."""

    def on_parameter_change(self, change: ParameterChange) -> None:
        """Hook for configuration edits; the default ignores them."""

    def attach(self, config: TrackConfig) -> None:
        config.subscribe(self.on_parameter_change)

    def detach(self, config: TrackConfig) -> None:
        config.unsubscribe(self.on_parameter_change)


def schedule_composition(backend: SynthBackend, composition: Composition,
                         start_offset: float = 0.0) -> int:
    """
    Hand every non-empty stream to the backend unchanged.

    Backends with a `schedule_stop(seconds)` method are also told when the
    track ends. Returns the number of events scheduled.
    """
    scheduled = 0
    for instrument, events in composition.events.items():
        if not events:
            continue
        backend.schedule_pattern(events, instrument, start_offset)
        scheduled += len(events)
    stop = getattr(backend, 'schedule_stop', None)
    if callable(stop):
        stop(start_offset + composition.duration_seconds())
    logger.debug("Scheduled %d events across %d streams",
                 scheduled, len(composition.active_instruments()))
    return scheduled


def export_filename(key: str, bpm: int, ext: str = 'wav', app: str = 'synthforge',
                    timestamp: Optional[datetime] = None) -> str:
    """Recording file name, e.g. 'synthforge-A-124bpm-20250101-120000.wav'."""
    timestamp = timestamp or datetime.now()
    return f"{app}-{normalize_key(key)}-{int(bpm)}bpm-{timestamp:%Y%m%d-%H%M%S}.{ext.lstrip('.')}"


@dataclass
class ScheduledNote:
    """One call a RecordingBackend received."""
    instrument: str
    time: float
    event: NoteEvent


class RecordingBackend(SynthBackend):
    """
    Backend that records what it is asked to play.

    Useful for offline rendering and for inspecting a schedule. Scheduled
    events are resolved to absolute seconds using the tempo it was given.
    """

    def __init__(self, bpm: float = 126.0):
        self.bpm = bpm
        self.scheduled: List[ScheduledNote] = []
        self.played: List[tuple] = []
        self.changes: List[ParameterChange] = []
        self.stop_time: Optional[float] = None

    def play_kick(self, time=None, velocity=1.0):
        self.played.append(('kick', time, velocity))

    def play_bass(self, note, duration, time=None, velocity=1.0):
        self.played.append(('bass', note, duration, time, velocity))

    def play_melody(self, note, duration, time=None, velocity=1.0):
        self.played.append(('melody', note, duration, time, velocity))

    def play_hihat(self, time=None, velocity=1.0, open=False):
        self.played.append(('hihat', time, velocity, open))

    def play_pad(self, notes, duration, time=None):
        self.played.append(('pad', tuple(notes), duration, time))

    def schedule_pattern(self, events, instrument, start_offset=0.0):
        for event in events:
            self.scheduled.append(ScheduledNote(instrument, start_offset + event.seconds(self.bpm), event))

    def schedule_stop(self, seconds: float) -> None:
        self.stop_time = seconds

    def on_parameter_change(self, change):
        if change.path == 'bpm':
            self.bpm = float(change.value)
        self.changes.append(change)

    def events_for(self, instrument: str) -> List[ScheduledNote]:
        return [s for s in self.scheduled if s.instrument == instrument]

    def counts(self) -> Dict[str, int]:
        result: Dict[str, int] = {}
        for s in self.scheduled:
            result[s.instrument] = result.get(s.instrument, 0) + 1
        return result

    def render(self) -> None:
        """Replay the recorded schedule through the play_* methods in time order."""
        for item in sorted(self.scheduled, key=lambda s: s.time):
            event = item.event
            if item.instrument == 'kick':
                self.play_kick(item.time, event.velocity)
            elif item.instrument == 'bass':
                self.play_bass(event.note, event.duration, item.time, event.velocity)
            elif item.instrument == 'hihat':
                self.play_hihat(item.time, event.velocity, open=event.articulation == 'open')
            elif item.instrument == 'pad':
                self.play_pad([event.note], event.duration, item.time)
            elif event.note is not None:
                self.play_melody(event.note, event.duration, item.time, event.velocity)
