"""
Configuration module for the AI receptionist.

This module provides centralized configuration management for the entire application,
including constants, prompts, and logging setup.

Key components:
- constants: Application-wide constants: model names, audio formats, grace
  delays, control tag literals and UI message types.
- prompts: The receptionist system instruction and the post-call analysis prompt.
- logging_config: Console and rotating file logging for the named application logger.

Usage examples:
```python
from receptionist.config.constants import LOGGER_NAME, OUTPUT_SAMPLE_RATE
from receptionist.config.logging_config import configure_logging

logger = configure_logging()
logger.info("Application started")
```
"""

# Config module initialization
