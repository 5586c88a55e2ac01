"""
Call session bridge between the local audio devices and the Gemini Live API.

This module ties the three halves of a simulated call together:
- the ingress pipeline streaming microphone frames to the session,
- the playback scheduler rendering the model's audio replies,
- the transcript parser tracking turns and the in-band control tags.

Every call is an explicit CallSession returned by ``start_call`` and ended by
``stop_call``. All server traffic for a session goes through one event queue
and is handled by a single dispatcher task, so messages are processed strictly
in arrival order and one at a time.
"""

import asyncio
import inspect
import logging
import os
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from receptionist.bot.control_protocol import TAG_KIND_ACTION, TranscriptParser
from receptionist.bot.ingress import AudioIngressPipeline, AudioInput
from receptionist.bot.live_api import (
    EVENT_CLOSE,
    EVENT_ERROR,
    EVENT_MESSAGE,
    EVENT_OPEN,
    LiveSessionClient,
    SessionEvent,
)
from receptionist.bot.playback import AudioOutput, PlaybackScheduler
from receptionist.config.constants import (
    DEFAULT_LIVE_MODEL,
    DEFAULT_VOICE_NAME,
    HANGUP_GRACE_DELAY,
    LOGGER_NAME,
    TRANSFER_GRACE_DELAY,
)
from receptionist.errors import (
    CallAlreadyActiveError,
    DeviceAcquisitionError,
    SessionOpenError,
)
from receptionist.models.call import (
    ActionCode,
    CallClassification,
    CallPhase,
    CallRecord,
    TranscriptionEntry,
    now_ms,
)
from receptionist.models.live_schemas import LiveServerMessage

logger = logging.getLogger(LOGGER_NAME)

# Get Gemini configuration from environment variables
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
LIVE_MODEL = os.getenv("GEMINI_LIVE_MODEL", DEFAULT_LIVE_MODEL)
VOICE_NAME = os.getenv("GEMINI_VOICE_NAME", DEFAULT_VOICE_NAME)

DEFAULT_GRACE_DELAYS = {
    ActionCode.TRANSFER: TRANSFER_GRACE_DELAY,
    ActionCode.HANGUP: HANGUP_GRACE_DELAY,
}

CallEndCallback = Callable[
    [List[TranscriptionEntry], CallClassification, Optional[ActionCode]],
    Optional[Awaitable[None]],
]
TranscriptCallback = Callable[[TranscriptionEntry], Optional[Awaitable[None]]]
StatusCallback = Callable[["CallSession"], Optional[Awaitable[None]]]


async def _invoke(callback: Optional[Callable[..., Any]], *args) -> None:
    """Run a sync or async collaborator callback; its failures never break the call."""
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Error in call callback {getattr(callback, '__name__', callback)}: {e}", exc_info=True)


def _default_input() -> AudioInput:
    from receptionist.bot.audio_devices import PyAudioInput

    return PyAudioInput()


def _default_output() -> AudioOutput:
    from receptionist.bot.audio_devices import PyAudioOutput

    return PyAudioOutput()


class CallSession:
    """
    State of one call attempt. Created by the bridge, never reused.

    The transcript is only appended to at turn boundaries; collaborators get
    a copy when the call ends.
    """

    def __init__(
        self,
        client: LiveSessionClient,
        ingress: AudioIngressPipeline,
        playback: PlaybackScheduler,
        on_call_end: CallEndCallback,
        on_transcript: Optional[TranscriptCallback] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        self.id = str(uuid.uuid4())
        self.client = client
        self.ingress = ingress
        self.playback = playback
        self.parser = TranscriptParser()
        self.transcript: List[TranscriptionEntry] = []
        self.on_call_end = on_call_end
        self.on_transcript = on_transcript
        self.on_status = on_status
        self.start_time = now_ms()
        self.end_time: Optional[int] = None
        self.active = True
        self.closing = False
        self.ended = False
        self.dispatcher_task: Optional[asyncio.Task] = None
        self.termination_tasks: Set[asyncio.Task] = set()

    @property
    def events(self) -> asyncio.Queue:
        return self.client.events

    @property
    def classification(self) -> CallClassification:
        return self.parser.classification

    @property
    def action(self) -> Optional[ActionCode]:
        return self.parser.action

    @property
    def phase(self) -> CallPhase:
        return self.parser.phase

    def to_record(self) -> CallRecord:
        record = CallRecord.from_call(
            self.transcript,
            self.classification,
            self.action,
            start_time=self.start_time,
            end_time=self.end_time,
        )
        record.id = self.id
        return record


class CallSessionBridge:
    """
    Owns the single active call and drives its lifecycle.

    Only one call can be active at a time. ``stop_call`` may be triggered by
    the user, by the remote side closing or failing, or by a post-action
    timer; whichever comes first tears the call down and reports it, the rest
    are no-ops.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        voice_name: Optional[str] = None,
        input_factory: Callable[[], AudioInput] = _default_input,
        output_factory: Callable[[], AudioOutput] = _default_output,
        client_factory: Optional[Callable[[str, asyncio.Queue], LiveSessionClient]] = None,
        grace_delays: Optional[Dict[ActionCode, float]] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.voice_name = voice_name
        self.input_factory = input_factory
        self.output_factory = output_factory
        self.client_factory = client_factory or self._create_client
        self.grace_delays = dict(DEFAULT_GRACE_DELAYS)
        if grace_delays:
            self.grace_delays.update(grace_delays)
        self.active_session: Optional[CallSession] = None
        self._starting = False
        self._stop_requested = False

        self.handlers: Dict[str, Callable[[CallSession, SessionEvent], Awaitable[None]]] = {
            EVENT_OPEN: self._handle_open,
            EVENT_MESSAGE: self._handle_message,
            EVENT_CLOSE: self._handle_close,
            EVENT_ERROR: self._handle_error,
        }

    @property
    def is_calling(self) -> bool:
        return self.active_session is not None and self.active_session.active

    @property
    def starting(self) -> bool:
        return self._starting

    def _create_client(self, api_key: str, events: asyncio.Queue) -> LiveSessionClient:
        return LiveSessionClient(
            api_key,
            model=self.model or LIVE_MODEL,
            voice_name=self.voice_name or VOICE_NAME,
            events=events,
        )

    async def start_call(
        self,
        on_call_end: CallEndCallback,
        on_transcript: Optional[TranscriptCallback] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> CallSession:
        """
        Acquire the audio devices, open the Live session and start the call.

        Nothing stays open if this raises.

        Raises:
            CallAlreadyActiveError: If another call is active or still starting
            SessionOpenError: If the API key is missing, the session cannot open,
                or stop_call was requested while starting
            DeviceAcquisitionError: If the microphone or speaker is unavailable
        """
        if self.active_session is not None or self._starting:
            raise CallAlreadyActiveError("A call is already active")

        api_key = self.api_key or GEMINI_API_KEY
        if not api_key:
            logger.error("GEMINI_API_KEY environment variable not set")
            raise SessionOpenError("GEMINI_API_KEY environment variable not set")

        # Claim the slot before the first await
        self._starting = True
        self._stop_requested = False
        try:
            client = self.client_factory(api_key, asyncio.Queue())
            ingress = AudioIngressPipeline(self.input_factory(), client.send_realtime_input)
            output = self.output_factory()
            output_open = False
            try:
                ingress.acquire()
                try:
                    output.open()
                except DeviceAcquisitionError:
                    raise
                except Exception as e:
                    raise DeviceAcquisitionError(f"Could not open speaker: {e}") from e
                output_open = True
                await client.connect()
                if self._stop_requested:
                    raise SessionOpenError("Call was stopped while starting")
            except (Exception, asyncio.CancelledError) as e:
                logger.error(f"Failed to start call: {e!r}")
                await ingress.stop()
                if output_open:
                    output.close()
                await client.close()
                raise

            session = CallSession(
                client,
                ingress,
                PlaybackScheduler(output),
                on_call_end,
                on_transcript=on_transcript,
                on_status=on_status,
            )
            self.active_session = session
            session.dispatcher_task = asyncio.create_task(self._dispatch(session))
        finally:
            self._starting = False

        logger.info(f"Call started: {session.id}")
        return session

    async def _dispatch(self, session: CallSession) -> None:
        """Handle session events one at a time, in arrival order."""
        while not session.closing:
            event = await session.events.get()
            handler = self.handlers.get(event.kind)
            if handler is None:
                logger.warning(f"Unhandled session event: {event.kind}")
                continue
            try:
                await handler(session, event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error handling {event.kind} event: {e}", exc_info=True)
            if event.kind in (EVENT_CLOSE, EVENT_ERROR):
                break

    async def _handle_open(self, session: CallSession, event: SessionEvent) -> None:
        if session.active:
            session.ingress.start()

    async def _handle_message(self, session: CallSession, event: SessionEvent) -> None:
        if not session.active:
            return
        message: LiveServerMessage = event.payload
        parser = session.parser

        for chunk in message.audio_chunks:
            session.playback.enqueue(chunk)

        if message.input_text:
            parser.add_caller_fragment(message.input_text)

        if message.output_text:
            applied = parser.add_assistant_fragment(message.output_text)
            for tag in applied:
                if tag.kind == TAG_KIND_ACTION:
                    self._schedule_termination(session, parser.action)
            if applied:
                await _invoke(session.on_status, session)

        if message.turn_complete:
            for entry in parser.complete_turn():
                session.transcript.append(entry)
                await _invoke(session.on_transcript, entry)

        if message.interrupted:
            session.playback.interrupt()

    async def _handle_close(self, session: CallSession, event: SessionEvent) -> None:
        logger.info(f"Live session closed by remote for call: {session.id}")
        await self.stop_call(session)

    async def _handle_error(self, session: CallSession, event: SessionEvent) -> None:
        logger.error(f"Live session error for call {session.id}: {event.payload}")
        await self.stop_call(session)

    def _schedule_termination(self, session: CallSession, action: ActionCode) -> None:
        delay = self.grace_delays[action]
        logger.info(f"{action.value} requested, ending call {session.id} in {delay}s")
        task = asyncio.create_task(self._terminate_after(session, delay))
        session.termination_tasks.add(task)
        task.add_done_callback(session.termination_tasks.discard)

    async def _terminate_after(self, session: CallSession, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.stop_call(session)

    async def stop_call(self, session: Optional[CallSession] = None) -> None:
        """
        Tear the call down and report it to ``on_call_end`` exactly once.

        Safe to call from any trigger and any number of times. Called while a
        call is still starting, it makes that start fail and release everything.
        """
        session = session or self.active_session
        if session is None:
            if self._starting:
                logger.info("Stop requested while the call is starting")
                self._stop_requested = True
            return
        if session.closing:
            return
        session.closing = True
        session.active = False
        session.parser.mark_terminated()
        current = asyncio.current_task()

        for task in list(session.termination_tasks):
            if task is not current:
                task.cancel()

        await session.ingress.stop()
        session.playback.close()
        await session.client.close()

        task = session.dispatcher_task
        if task is not None and task is not current and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self.active_session is session:
            self.active_session = None
        session.end_time = now_ms()
        session.ended = True
        logger.info(
            f"Call ended: {session.id} (classification={session.classification.value}, "
            f"action={session.action.value if session.action else None}, "
            f"entries={len(session.transcript)})"
        )
        await _invoke(
            session.on_call_end,
            list(session.transcript),
            session.classification,
            session.action,
        )


# Create a singleton instance of the bridge
bridge = CallSessionBridge()
