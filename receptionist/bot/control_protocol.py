"""
Transcript accumulation and the in-band control tag protocol.

The model speaks plain text but embeds bracketed control tags in its output
transcription, e.g. ``[ACTION: HANGUP]`` or ``[CALL_TYPE: SPAM]``. This module
detects them while the text is still streaming in, keeps the per-turn
transcript buffers, and turns each completed turn into TranscriptionEntry
values with the tags removed.

Tags may arrive split across fragments (``"[ACTION: HA"`` + ``"NGUP]"``), so
detection runs on an incremental scanner instead of on each fragment alone.
"""

import logging
import re
from typing import List, NamedTuple, Optional

from receptionist.config.constants import (
    LOGGER_NAME,
    TAG_ACTION_HANGUP,
    TAG_ACTION_TRANSFER,
    TAG_CALL_TYPE_IMPORTANT,
    TAG_CALL_TYPE_SPAM,
)
from receptionist.models.call import (
    ActionCode,
    CallClassification,
    CallPhase,
    Role,
    TranscriptionEntry,
    TurnState,
)

logger = logging.getLogger(LOGGER_NAME)

TAG_KIND_ACTION = "ACTION"
TAG_KIND_CALL_TYPE = "CALL_TYPE"
_TAG_PREFIXES = (TAG_KIND_ACTION + ":", TAG_KIND_CALL_TYPE + ":")

# A complete tag, tolerant of spacing after the colon
TAG_PATTERN = re.compile(r"^\[(ACTION|CALL_TYPE):\s*([A-Z_]+)\s*\]$")
# Any tag-shaped substring, whatever its value; used to clean display text
STRIP_PATTERN = re.compile(r"\[(?:CALL_TYPE|ACTION):[^\]\n]*\]")
_PARTIAL_VALUE_PATTERN = re.compile(r"[ A-Z_]*")

# Longest unclosed "[..." tail worth holding back between fragments
MAX_PENDING_TAG_LENGTH = max(
    len(tag) for tag in (
        TAG_ACTION_TRANSFER, TAG_ACTION_HANGUP, TAG_CALL_TYPE_SPAM, TAG_CALL_TYPE_IMPORTANT
    )
) + 4


class ControlTag(NamedTuple):
    kind: str
    value: str


def strip_control_tags(text: str) -> str:
    """Remove every control tag from text and trim surrounding whitespace."""
    return STRIP_PATTERN.sub("", text).strip()


def _is_partial_tag(tail: str) -> bool:
    """Whether an unclosed ``[...`` tail could still grow into a control tag."""
    body = tail[1:]
    for prefix in _TAG_PREFIXES:
        if prefix.startswith(body):
            return True
        if body.startswith(prefix):
            return _PARTIAL_VALUE_PATTERN.fullmatch(body[len(prefix):]) is not None
    return False


class ControlTagScanner:
    """
    Incremental scanner for control tags in streamed text.

    Each call to ``feed`` returns the tags completed by that fragment, in text
    order. A tag is reported exactly once even if it spans several fragments.
    """

    def __init__(self):
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, fragment: str) -> List[ControlTag]:
        text = self._pending + fragment
        self._pending = ""
        tags: List[ControlTag] = []
        pos = 0
        while True:
            start = text.find("[", pos)
            if start == -1:
                break
            end = text.find("]", start)
            if end == -1:
                tail = text[start:]
                if len(tail) <= MAX_PENDING_TAG_LENGTH and _is_partial_tag(tail):
                    self._pending = tail
                    break
                # A later "[" in the tail may still open a split tag
                pos = start + 1
                continue
            match = TAG_PATTERN.match(text[start:end + 1])
            if match:
                tags.append(ControlTag(match.group(1), match.group(2)))
                pos = end + 1
            else:
                # Not a tag; a later "[" inside it may still start one
                pos = start + 1
        return tags

    def reset(self):
        self._pending = ""


class TranscriptParser:
    """
    Per-call transcript state machine.

    Turn state goes IDLE -> TURN_IN_PROGRESS on the first fragment and back to
    IDLE when ``complete_turn`` emits the entries. The call phase moves from
    UNCLASSIFIED through CLASSIFIED and ACTION_PENDING to TERMINATED.

    Classification and action are first-write-wins: once set, a conflicting
    later tag is logged and ignored, and a repeated identical tag is a no-op.
    """

    def __init__(self):
        self.caller_buffer = ""
        self.assistant_buffer = ""
        self.classification = CallClassification.UNKNOWN
        self.action: Optional[ActionCode] = None
        self.terminated = False
        self._scanner = ControlTagScanner()

    @property
    def turn_state(self) -> TurnState:
        if self.caller_buffer or self.assistant_buffer:
            return TurnState.TURN_IN_PROGRESS
        return TurnState.IDLE

    @property
    def phase(self) -> CallPhase:
        if self.terminated:
            return CallPhase.TERMINATED
        if self.action is not None:
            return CallPhase.ACTION_PENDING
        if self.classification != CallClassification.UNKNOWN:
            return CallPhase.CLASSIFIED
        return CallPhase.UNCLASSIFIED

    def add_caller_fragment(self, text: str) -> None:
        self.caller_buffer += text

    def add_assistant_fragment(self, text: str) -> List[ControlTag]:
        """
        Append an assistant fragment and apply any control tags it completes.

        Returns:
            The tags that changed the classification or the action
        """
        self.assistant_buffer += text
        applied = []
        for tag in self._scanner.feed(text):
            if self._apply(tag):
                applied.append(tag)
        return applied

    def _apply(self, tag: ControlTag) -> bool:
        if self.terminated:
            return False

        if tag.kind == TAG_KIND_ACTION:
            try:
                action = ActionCode(tag.value)
            except ValueError:
                logger.warning(f"Ignoring unknown action tag value: {tag.value}")
                return False
            if self.action is None:
                self.action = action
                logger.info(f"Action detected: {action.value}")
                return True
            if self.action != action:
                logger.warning(
                    f"Ignoring action {action.value}; {self.action.value} already requested"
                )
            return False

        try:
            classification = CallClassification(tag.value)
        except ValueError:
            logger.warning(f"Ignoring unknown call type tag value: {tag.value}")
            return False
        if classification == CallClassification.UNKNOWN:
            return False
        if self.classification == CallClassification.UNKNOWN:
            self.classification = classification
            logger.info(f"Call classified as {classification.value}")
            return True
        if self.classification != classification:
            logger.warning(
                f"Ignoring call type {classification.value}; "
                f"already classified as {self.classification.value}"
            )
        return False

    def complete_turn(self) -> List[TranscriptionEntry]:
        """
        Flush the turn buffers into transcript entries.

        The caller entry, if any, precedes the assistant entry. Buffers are
        cleared whether or not anything was emitted.
        """
        entries = []
        caller_text = self.caller_buffer.strip()
        if caller_text:
            entries.append(TranscriptionEntry(role=Role.CALLER, text=caller_text))
        assistant_text = strip_control_tags(self.assistant_buffer)
        if assistant_text:
            entries.append(TranscriptionEntry(role=Role.ASSISTANT, text=assistant_text))

        self.caller_buffer = ""
        self.assistant_buffer = ""
        self._scanner.reset()
        return entries

    def mark_terminated(self) -> None:
        self.terminated = True
