"""
Microphone ingress: captured float frames to outbound PCM16 media chunks.

The capture device delivers float32 frames (usually from an audio thread).
Frames are handed to the event loop, converted to 16 kHz little-endian PCM16,
base64-wrapped and sent over the Live session in capture order. Capture never
waits for a send to finish; if sending falls behind, the oldest unsent frames
are dropped so the caller is never heard with growing delay.
"""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Optional

import numpy as np

from receptionist.config.constants import (
    INGRESS_MAX_PENDING_FRAMES,
    INPUT_SAMPLE_RATE,
    LOGGER_NAME,
)
from receptionist.errors import DeviceAcquisitionError
from receptionist.models.live_schemas import MediaChunk

logger = logging.getLogger(LOGGER_NAME)

FrameCallback = Callable[[np.ndarray], None]


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples in [-1, 1] to little-endian PCM16 bytes, clipping overs."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


def create_pcm_blob(samples: np.ndarray, sample_rate: int = INPUT_SAMPLE_RATE) -> MediaChunk:
    """Wrap a float frame as a realtime input media chunk."""
    return MediaChunk(
        mimeType=f"audio/pcm;rate={sample_rate}",
        data=base64.b64encode(float_to_pcm16(samples)).decode("utf-8"),
    )


class AudioInput:
    """
    Interface of a capture device.

    ``open`` acquires the device without delivering audio, ``start`` begins
    delivering frames to the callback (possibly from another thread), ``close``
    releases the device.
    """

    sample_rate: int = INPUT_SAMPLE_RATE

    def open(self) -> None:
        raise NotImplementedError

    def start(self, on_frame: FrameCallback) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class AudioIngressPipeline:
    """Streams microphone frames to a send coroutine for the lifetime of a call."""

    def __init__(
        self,
        device: AudioInput,
        send: Callable[[MediaChunk], Awaitable[Any]],
        max_pending_frames: int = INGRESS_MAX_PENDING_FRAMES,
    ):
        self.device = device
        self._send = send
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending_frames)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._acquired = False
        self._streaming = False
        self.frames_sent = 0
        self.frames_dropped = 0

    @property
    def streaming(self) -> bool:
        return self._streaming

    def acquire(self) -> None:
        """
        Open the capture device.

        Raises:
            DeviceAcquisitionError: If the device is unavailable or access is denied
        """
        self._loop = asyncio.get_running_loop()
        try:
            self.device.open()
        except DeviceAcquisitionError:
            raise
        except Exception as e:
            raise DeviceAcquisitionError(f"Could not open microphone: {e}") from e
        self._acquired = True
        logger.info("Microphone acquired")

    def start(self) -> None:
        """Begin streaming captured frames."""
        if not self._acquired or self._streaming:
            return
        self._streaming = True
        self._pump_task = asyncio.create_task(self._pump())
        self.device.start(self._on_frame)
        logger.info("Microphone streaming started")

    def _on_frame(self, frame: np.ndarray) -> None:
        if not self._streaming or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue, frame)
        except RuntimeError:
            # Event loop already closed during shutdown
            logger.debug("Dropping captured frame, event loop closed")

    def _enqueue(self, frame: np.ndarray) -> None:
        if not self._streaming:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.frames_dropped += 1
            if self.frames_dropped == 1 or self.frames_dropped % 100 == 0:
                logger.warning(f"Microphone frames backing up, dropped {self.frames_dropped} so far")
        self._queue.put_nowait(frame)

    async def _pump(self) -> None:
        while True:
            frame = await self._queue.get()
            if frame is None:
                break
            try:
                await self._send(create_pcm_blob(frame, self.device.sample_rate))
                self.frames_sent += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Connection failures are reported through the session's own events
                logger.warning(f"Failed to send microphone frame: {e}")

    async def stop(self) -> None:
        """Stop sending and release the device. Safe to call more than once."""
        self._streaming = False
        if self._acquired:
            self._acquired = False
            try:
                self.device.close()
            except Exception as e:
                logger.warning(f"Error releasing microphone: {e}")
            logger.info(
                f"Microphone released after {self.frames_sent} frame(s), "
                f"{self.frames_dropped} dropped"
            )

        task, self._pump_task = self._pump_task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
