"""
Note event data structure shared by generators, the arranger and playback.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .utils import (
    TICKS_PER_BAR,
    ticks_to_notation,
    ticks_to_seconds,
    ticks_to_transport,
)


@dataclass
class NoteEvent:
    """
    A single scheduled note.

    `tick` is the grid position (section-relative when produced by a
    generator, track-global after arrangement). Micro-timing lives in
    `offset_ms` so humanization never moves an event off its grid slot.
    """
    note: Optional[str]          # Pitch name ('A3'), None for unpitched hits
    tick: int                    # Grid position in ticks
    duration_ticks: int          # Length in ticks
    velocity: float              # 0.0-1.0
    offset_ms: float = 0.0       # Humanized timing offset
    filter_hz: Optional[float] = None   # Filter target for unpitched/fx hits
    articulation: Optional[str] = None  # 'open', 'clap', 'riser', ...
    tension: bool = False        # Injected out-of-scale passing tone

    @property
    def end_tick(self) -> int:
        return self.tick + self.duration_ticks

    @property
    def time(self) -> str:
        """Transport position 'bar:beat:sixteenth'."""
        return ticks_to_transport(self.tick)

    @property
    def duration(self) -> str:
        """Symbolic duration ('8n', '2m', '300i')."""
        return ticks_to_notation(self.duration_ticks)

    @property
    def bar_position(self) -> float:
        return self.tick / TICKS_PER_BAR

    def seconds(self, bpm: float) -> float:
        """Start time in seconds including the micro-timing offset."""
        return max(0.0, ticks_to_seconds(self.tick, bpm) + self.offset_ms / 1000.0)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['time'] = self.time
        data['duration'] = self.duration
        return data
