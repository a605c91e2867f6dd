"""Tests for the playback boundary."""
from datetime import datetime

import pytest

from synthforge.arranger import compose
from synthforge.config import SectionConfig, TrackConfig
from synthforge.playback import RecordingBackend, SynthBackend, export_filename, schedule_composition


@pytest.fixture
def composition():
    config = TrackConfig(bpm=120, sections=[
        SectionConfig.with_layers('drop', 2, ('kick', 'bass', 'hihat', 'pad'), 70),
    ])
    return compose(config, 4)


class TestScheduling:

    def test_schedules_every_event(self, composition):
        backend = RecordingBackend(bpm=120)
        count = schedule_composition(backend, composition)
        assert count == composition.event_count()
        assert backend.counts() == {name: len(events) for name, events in composition.events.items()
                                    if events}

    def test_times_and_stop(self, composition):
        backend = RecordingBackend(bpm=120)
        schedule_composition(backend, composition, start_offset=0.1)
        kicks = backend.events_for('kick')
        # 120 BPM: one beat is half a second
        assert [round(k.time, 3) for k in kicks] == [round(0.1 + 0.5 * i, 3) for i in range(8)]
        assert backend.stop_time == pytest.approx(0.1 + 4.0)

    def test_render_dispatches(self, composition):
        backend = RecordingBackend(bpm=120)
        schedule_composition(backend, composition)
        backend.render()
        kinds = {call[0] for call in backend.played}
        assert {'kick', 'bass', 'hihat', 'pad'} <= kinds

    def test_backend_is_abstract(self):
        with pytest.raises(TypeError):
            SynthBackend()


class TestParameterChanges:

    def test_attach_follows_edits(self):
        config = TrackConfig()
        backend = RecordingBackend()
        backend.attach(config)
        config.set_value('bpm', 132)
        config.update_instrument('bass', cutoff=300)
        assert backend.bpm == 132.0
        assert [c.path for c in backend.changes] == ['bpm', 'bass.cutoff']

        backend.detach(config)
        config.set_value('bpm', 120)
        assert backend.bpm == 132.0


def test_export_filename():
    stamp = datetime(2025, 1, 1, 12, 0, 0)
    assert export_filename('A', 124, timestamp=stamp) == 'synthforge-A-124bpm-20250101-120000.wav'
    assert export_filename('bb', 128.0, '.mid', timestamp=stamp) == \
        'synthforge-A#-128bpm-20250101-120000.mid'
