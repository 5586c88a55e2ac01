"""
Unit tests for the audio egress scheduler.

A fake output device with a settable clock stands in for the speaker.
"""

import base64

import numpy as np
import pytest

from receptionist.bot.playback import (
    AudioOutput,
    PlaybackScheduler,
    ScheduledSegment,
    decode_pcm16,
)
from receptionist.errors import DecodeError


class FakeOutput(AudioOutput):
    def __init__(self, sample_rate=24000):
        self.sample_rate = sample_rate
        self.clock = 0.0
        self.segments = []
        self.closed = False

    def open(self):
        pass

    @property
    def current_time(self):
        return self.clock

    def play(self, samples, start_time):
        segment = ScheduledSegment(samples, start_time, self.sample_rate)
        self.segments.append(segment)
        return segment

    def close(self):
        self.closed = True


def pcm_chunk(num_samples, value=1000):
    """Base64 PCM16 chunk of num_samples identical samples."""
    return base64.b64encode(np.full(num_samples, value, dtype="<i2").tobytes()).decode("utf-8")


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def scheduler(output):
    return PlaybackScheduler(output)


def test_decode_pcm16_scales_to_float():
    data = base64.b64encode(np.array([0, 16384, -32768], dtype="<i2").tobytes()).decode()
    samples = decode_pcm16(data)
    assert samples.dtype == np.float32
    np.testing.assert_allclose(samples, [0.0, 0.5, -1.0])


@pytest.mark.parametrize("payload", ["not base64!!", "", base64.b64encode(b"\x01\x02\x03").decode()])
def test_decode_pcm16_rejects_bad_payloads(payload):
    with pytest.raises(DecodeError):
        decode_pcm16(payload)


def test_first_chunk_starts_at_clock(scheduler, output):
    output.clock = 5.0
    segment = scheduler.enqueue(pcm_chunk(2400))
    assert segment.start_time == 5.0
    assert scheduler.next_start_time == pytest.approx(5.1)


def test_chunks_are_gapless_and_ordered(scheduler, output):
    first = scheduler.enqueue(pcm_chunk(2400))
    output.clock = 0.05
    second = scheduler.enqueue(pcm_chunk(4800))
    third = scheduler.enqueue(pcm_chunk(1200))

    assert second.start_time == pytest.approx(first.end_time)
    assert third.start_time == pytest.approx(second.end_time)
    assert scheduler.next_start_time == pytest.approx(0.35)


def test_cursor_behind_clock_starts_now(scheduler, output):
    scheduler.enqueue(pcm_chunk(2400))
    output.clock = 3.0
    segment = scheduler.enqueue(pcm_chunk(2400))
    assert segment.start_time == 3.0


def test_decode_error_is_skipped(scheduler, output):
    scheduler.enqueue(pcm_chunk(2400))
    assert scheduler.enqueue("%%%") is None
    segment = scheduler.enqueue(pcm_chunk(2400))

    assert len(output.segments) == 2
    assert segment.start_time == pytest.approx(0.1)


def test_interrupt_stops_segments_and_resets_cursor(scheduler, output):
    segments = [scheduler.enqueue(pcm_chunk(2400)) for _ in range(3)]
    assert len(scheduler.active_segments) == 3

    scheduler.interrupt()

    assert all(segment.stopped for segment in segments)
    assert scheduler.active_segments == set()
    assert scheduler.next_start_time == 0.0

    output.clock = 0.02
    segment = scheduler.enqueue(pcm_chunk(2400))
    assert segment.start_time == 0.02


def test_finished_segments_leave_active_set(scheduler):
    segment = scheduler.enqueue(pcm_chunk(2400))
    segment.finish()
    assert segment not in scheduler.active_segments


def test_close_releases_output_and_ignores_new_chunks(scheduler, output):
    segment = scheduler.enqueue(pcm_chunk(2400))
    scheduler.close()
    scheduler.close()

    assert segment.stopped
    assert output.closed
    assert scheduler.closed
    assert scheduler.enqueue(pcm_chunk(2400)) is None


def test_segment_done_callbacks_run_once():
    calls = []
    segment = ScheduledSegment(np.zeros(10, dtype=np.float32), 0.0, 24000)
    segment.add_done_callback(calls.append)
    segment.stop()
    segment.finish()
    segment.add_done_callback(calls.append)
    assert calls == [segment, segment]
