"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "receptionist"

# Logging
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_DIR = "logs"
LOG_FILE_NAME = "receptionist.log"
LOG_MAX_BYTES = 10 * 1024 * 1024  # rotate at 10 MB
LOG_BACKUP_COUNT = 5
# Third-party loggers too chatty at INFO during a call
QUIET_LOGGERS = ("websockets", "urllib3")

# Gemini Live API
DEFAULT_LIVE_MODEL = "gemini-2.5-flash-native-audio-preview-12-2025"
DEFAULT_VOICE_NAME = "Kore"
LIVE_API_URL = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)

# Post-call analysis (search grounding)
DEFAULT_ANALYSIS_MODEL = "gemini-3-flash-preview"
GENERATE_CONTENT_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
ANALYSIS_TIMEOUT = 60  # seconds

# Audio format constants
INPUT_SAMPLE_RATE = 16000  # Microphone capture / Live API input
OUTPUT_SAMPLE_RATE = 24000  # Live API output / speaker
AUDIO_CHANNELS = 1
CAPTURE_FRAME_SIZE = 4096  # samples per captured frame
INGRESS_MAX_PENDING_FRAMES = 32  # unsent frames kept before the oldest is dropped
INPUT_MIME_TYPE = f"audio/pcm;rate={INPUT_SAMPLE_RATE}"

# Session timing
CONNECTION_TIMEOUT = 30  # seconds
SETUP_TIMEOUT = 10  # seconds to wait for setupComplete

# Grace delays between an action tag and teardown, so trailing speech can finish
TRANSFER_GRACE_DELAY = 2.0  # seconds
HANGUP_GRACE_DELAY = 1.5  # seconds

# Control tag mini-protocol embedded in assistant transcripts
TAG_ACTION_TRANSFER = "[ACTION: TRANSFER]"
TAG_ACTION_HANGUP = "[ACTION: HANGUP]"
TAG_CALL_TYPE_SPAM = "[CALL_TYPE: SPAM]"
TAG_CALL_TYPE_IMPORTANT = "[CALL_TYPE: IMPORTANT]"

# Fallback texts shown in place of an analysis summary
ANALYSIS_EMPTY_TEXT = "কোনো বিশ্লেষণ পাওয়া যায়নি।"
ANALYSIS_ERROR_TEXT = "বিশ্লেষণ করতে ত্রুটি হয়েছে।"

# UI message type constants
MESSAGE_TYPE_CALL_START = "call.start"
MESSAGE_TYPE_CALL_STOP = "call.stop"
MESSAGE_TYPE_CALL_STATUS = "call.status"
MESSAGE_TYPE_CALL_STARTED = "call.started"
MESSAGE_TYPE_CALL_ENDED = "call.ended"
MESSAGE_TYPE_TRANSCRIPT_ENTRY = "transcript.entry"
MESSAGE_TYPE_ANALYSIS_RESULT = "analysis.result"
MESSAGE_TYPE_ERROR = "error"
