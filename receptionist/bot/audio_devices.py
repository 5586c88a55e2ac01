"""
PyAudio-backed capture and playback devices.

PyAudioInput delivers fixed-size float32 frames from the default microphone.
PyAudioOutput renders scheduled segments on a sample clock: the clock advances
by the number of frames the sound card has consumed, and every segment is
mixed in at its absolute start sample. This gives the scheduler a "play at
time t" primitive on top of a plain PortAudio output stream.
"""

import asyncio
import logging
import threading
from typing import List, Optional

import numpy as np
import pyaudio

from receptionist.bot.ingress import AudioInput, FrameCallback
from receptionist.bot.playback import AudioOutput, ScheduledSegment
from receptionist.config.constants import (
    AUDIO_CHANNELS,
    CAPTURE_FRAME_SIZE,
    INPUT_SAMPLE_RATE,
    LOGGER_NAME,
    OUTPUT_SAMPLE_RATE,
)
from receptionist.errors import DeviceAcquisitionError

logger = logging.getLogger(LOGGER_NAME)

OUTPUT_FRAMES_PER_BUFFER = 1024


class PyAudioInput(AudioInput):
    """Default microphone, mono float32 at 16 kHz in 4096-sample frames."""

    def __init__(
        self,
        sample_rate: int = INPUT_SAMPLE_RATE,
        frame_size: int = CAPTURE_FRAME_SIZE,
        audio_interface: Optional[pyaudio.PyAudio] = None,
    ):
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self._interface = audio_interface
        self._owns_interface = audio_interface is None
        self._stream = None
        self._on_frame: Optional[FrameCallback] = None

    def open(self) -> None:
        try:
            if self._interface is None:
                self._interface = pyaudio.PyAudio()
            self._stream = self._interface.open(
                format=pyaudio.paFloat32,
                channels=AUDIO_CHANNELS,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.frame_size,
                stream_callback=self._callback,
                start=False,
            )
        except Exception as e:
            self._release_interface()
            raise DeviceAcquisitionError(f"Microphone unavailable: {e}") from e

    def start(self, on_frame: FrameCallback) -> None:
        self._on_frame = on_frame
        if self._stream is not None:
            self._stream.start_stream()

    def _callback(self, in_data, frame_count, time_info, status):
        if status:
            logger.debug(f"Capture status flags: {status}")
        if self._on_frame is not None:
            self._on_frame(np.frombuffer(in_data, dtype=np.float32).copy())
        return (None, pyaudio.paContinue)

    def close(self) -> None:
        self._on_frame = None
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop_stream()
            finally:
                stream.close()
        self._release_interface()

    def _release_interface(self) -> None:
        if self._owns_interface and self._interface is not None:
            self._interface.terminate()
            self._interface = None


class PyAudioOutput(AudioOutput):
    """
    Default speaker, mono float32 at 24 kHz, with a sample-accurate clock.

    Segment completion is reported back on the event loop that opened the device.
    """

    def __init__(
        self,
        sample_rate: int = OUTPUT_SAMPLE_RATE,
        frames_per_buffer: int = OUTPUT_FRAMES_PER_BUFFER,
        audio_interface: Optional[pyaudio.PyAudio] = None,
    ):
        self.sample_rate = sample_rate
        self.frames_per_buffer = frames_per_buffer
        self._interface = audio_interface
        self._owns_interface = audio_interface is None
        self._stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()
        self._segments: List[ScheduledSegment] = []
        self._frames_rendered = 0

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / self.sample_rate

    def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        try:
            if self._interface is None:
                self._interface = pyaudio.PyAudio()
            self._stream = self._interface.open(
                format=pyaudio.paFloat32,
                channels=AUDIO_CHANNELS,
                rate=self.sample_rate,
                output=True,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._callback,
            )
        except Exception as e:
            self._release_interface()
            raise DeviceAcquisitionError(f"Speaker unavailable: {e}") from e

    def play(self, samples: np.ndarray, start_time: float) -> ScheduledSegment:
        segment = ScheduledSegment(samples.astype(np.float32), start_time, self.sample_rate)
        with self._lock:
            self._segments.append(segment)
        return segment

    def render(self, frame_count: int) -> np.ndarray:
        """Mix the next frame_count samples and advance the clock."""
        out = np.zeros(frame_count, dtype=np.float32)
        finished = []
        with self._lock:
            block_start = self._frames_rendered
            block_end = block_start + frame_count
            for segment in list(self._segments):
                if segment.stopped:
                    self._segments.remove(segment)
                    continue
                seg_start = int(round(segment.start_time * self.sample_rate))
                seg_end = seg_start + len(segment.samples)
                lo = max(seg_start, block_start)
                hi = min(seg_end, block_end)
                if lo < hi:
                    out[lo - block_start:hi - block_start] += segment.samples[lo - seg_start:hi - seg_start]
                if seg_end <= block_end:
                    self._segments.remove(segment)
                    finished.append(segment)
            self._frames_rendered = block_end

        for segment in finished:
            self._notify_finished(segment)
        np.clip(out, -1.0, 1.0, out=out)
        return out

    def _notify_finished(self, segment: ScheduledSegment) -> None:
        if self._loop is None:
            segment.finish()
            return
        try:
            self._loop.call_soon_threadsafe(segment.finish)
        except RuntimeError:
            logger.debug("Event loop closed, segment completion not delivered")

    def _callback(self, in_data, frame_count, time_info, status):
        if status:
            logger.debug(f"Playback status flags: {status}")
        return (self.render(frame_count).tobytes(), pyaudio.paContinue)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop_stream()
            finally:
                stream.close()
        with self._lock:
            self._segments.clear()
        self._release_interface()

    def _release_interface(self) -> None:
        if self._owns_interface and self._interface is not None:
            self._interface.terminate()
            self._interface = None
