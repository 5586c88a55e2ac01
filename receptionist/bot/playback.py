"""
Gapless playback of audio chunks streamed back by the Live API.

Chunks arrive as independent base64 PCM16 slices. The PlaybackScheduler lays
them out back to back on the output device clock: each chunk starts where the
previous one ends, or "now" if the cursor has fallen behind the clock. An
interruption from the server (barge-in) stops everything that is scheduled and
resets the cursor, so the next chunk plays immediately.
"""

import base64
import binascii
import logging
from typing import Callable, List, Optional, Set

import numpy as np

from receptionist.config.constants import AUDIO_CHANNELS, LOGGER_NAME, OUTPUT_SAMPLE_RATE
from receptionist.errors import DecodeError

logger = logging.getLogger(LOGGER_NAME)


def decode_pcm16(audio_b64: str, channels: int = AUDIO_CHANNELS) -> np.ndarray:
    """
    Decode a base64 little-endian PCM16 chunk into float32 samples in [-1, 1).

    Multi-channel input is returned as a (frames, channels) array.

    Raises:
        DecodeError: If the payload is not base64 or not whole PCM16 frames
    """
    try:
        raw = base64.b64decode(audio_b64, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecodeError(f"Invalid base64 audio payload: {e}") from e

    frame_bytes = 2 * channels
    if not raw or len(raw) % frame_bytes:
        raise DecodeError(f"Audio payload of {len(raw)} bytes is not whole PCM16 frames")

    samples = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    if channels > 1:
        samples = samples.reshape(-1, channels)
    return samples


class ScheduledSegment:
    """
    A buffer scheduled on an output device.

    The device calls ``finish`` once the segment has played out or was stopped;
    done callbacks run exactly once.
    """

    def __init__(self, samples: np.ndarray, start_time: float, sample_rate: int):
        self.samples = samples
        self.start_time = start_time
        self.duration = len(samples) / sample_rate
        self.stopped = False
        self.finished = False
        self._done_callbacks: List[Callable[["ScheduledSegment"], None]] = []

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def add_done_callback(self, fn: Callable[["ScheduledSegment"], None]) -> None:
        if self.finished:
            fn(self)
        else:
            self._done_callbacks.append(fn)

    def stop(self) -> None:
        """Silence the segment immediately."""
        if not self.stopped:
            self.stopped = True
            self.finish()

    def finish(self) -> None:
        if self.finished:
            return
        self.finished = True
        callbacks, self._done_callbacks = self._done_callbacks, []
        for fn in callbacks:
            fn(self)


class AudioOutput:
    """
    Interface of a clocked output device.

    ``open`` acquires the device, ``current_time`` is the device clock in
    seconds, and ``play`` schedules samples to start at an absolute clock time
    and returns the ScheduledSegment.
    """

    sample_rate: int = OUTPUT_SAMPLE_RATE

    def open(self) -> None:
        raise NotImplementedError

    @property
    def current_time(self) -> float:
        raise NotImplementedError

    def play(self, samples: np.ndarray, start_time: float) -> ScheduledSegment:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class PlaybackScheduler:
    """
    Audio egress scheduler.

    Absent interruptions, segments are strictly ordered and contiguous:
    segment n+1 starts at or after the end of segment n.
    """

    def __init__(self, output: AudioOutput, channels: int = AUDIO_CHANNELS):
        self.output = output
        self.channels = channels
        self.next_start_time = 0.0
        self.active_segments: Set[ScheduledSegment] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, audio_b64: str) -> Optional[ScheduledSegment]:
        """
        Decode a chunk and schedule it right after the previous one.

        Malformed chunks are logged and dropped; playback continues with the
        next chunk.

        Returns:
            The scheduled segment, or None if the chunk was dropped
        """
        if self._closed:
            logger.debug("Playback closed, ignoring audio chunk")
            return None

        try:
            samples = decode_pcm16(audio_b64, self.channels)
        except DecodeError as e:
            logger.warning(f"Dropping undecodable audio chunk: {e}")
            return None

        start_time = max(self.next_start_time, self.output.current_time)
        segment = self.output.play(samples, start_time)
        self.next_start_time = start_time + segment.duration
        self.active_segments.add(segment)
        segment.add_done_callback(self.active_segments.discard)
        return segment

    def interrupt(self) -> None:
        """Stop every scheduled segment and restart the schedule from the clock."""
        stopped = len(self.active_segments)
        for segment in list(self.active_segments):
            segment.stop()
        self.active_segments.clear()
        self.next_start_time = 0.0
        if stopped:
            logger.info(f"Playback interrupted, stopped {stopped} segment(s)")

    def close(self) -> None:
        if self._closed:
            return
        self.interrupt()
        self._closed = True
        self.output.close()
