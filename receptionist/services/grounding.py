"""
Post-call analysis with Google Search grounding.

After a call ends, the transcript is sent to a Gemini model with the
google_search tool enabled. The model checks what the caller claimed against
live search results and answers with a Bangla summary; the cited web pages
come back as grounding chunks. This runs outside the call bridge, so a
failure here never affects call state.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from receptionist.config.constants import (
    ANALYSIS_EMPTY_TEXT,
    ANALYSIS_ERROR_TEXT,
    ANALYSIS_TIMEOUT,
    DEFAULT_ANALYSIS_MODEL,
    GENERATE_CONTENT_URL,
    LOGGER_NAME,
)
from receptionist.config.prompts import build_analysis_prompt
from receptionist.errors import AnalysisError
from receptionist.models.call import AnalysisResult, GroundingSource, Role, TranscriptionEntry

logger = logging.getLogger(LOGGER_NAME)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
ANALYSIS_MODEL = os.getenv("GEMINI_ANALYSIS_MODEL", DEFAULT_ANALYSIS_MODEL)


def format_transcript(transcript: List[TranscriptionEntry]) -> List[str]:
    """Render transcript entries as ``Caller:``/``AI:`` lines."""
    return [
        f"{'Caller' if entry.role == Role.CALLER else 'AI'}: {entry.text}"
        for entry in transcript
    ]


def extract_sources(response: Dict[str, Any]) -> List[GroundingSource]:
    """Collect web sources from the first candidate's grounding metadata."""
    candidates = response.get("candidates") or []
    if not candidates:
        return []
    chunks = (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []
    sources = []
    for chunk in chunks:
        web = chunk.get("web")
        if web and web.get("uri"):
            sources.append(GroundingSource(title=web.get("title") or "", uri=web["uri"]))
    return sources


def extract_text(response: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = response.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts).strip()


class GroundingAnalyzer:
    """Client for the search-grounded call analysis."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key
        self.model = model or ANALYSIS_MODEL

    async def _generate(self, prompt: str) -> Dict[str, Any]:
        """
        Call generateContent with the google_search tool.

        Raises:
            AnalysisError: On missing credentials, transport errors or non-200 replies
        """
        api_key = self.api_key or GEMINI_API_KEY
        if not api_key:
            raise AnalysisError("GEMINI_API_KEY environment variable not set")

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "tools": [{"google_search": {}}],
        }
        try:
            response = await asyncio.to_thread(
                requests.post,
                GENERATE_CONTENT_URL.format(model=self.model),
                headers={
                    "x-goog-api-key": api_key,
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=ANALYSIS_TIMEOUT,
            )
        except requests.RequestException as e:
            raise AnalysisError(f"Analysis request failed: {e}") from e

        if response.status_code != 200:
            raise AnalysisError(f"Analysis request returned {response.status_code}: {response.text[:200]}")
        try:
            return response.json()
        except ValueError as e:
            raise AnalysisError(f"Analysis response is not JSON: {e}") from e

    async def analyze(self, transcript: List[TranscriptionEntry]) -> Optional[AnalysisResult]:
        """
        Analyze a finished call.

        Returns:
            The summary and its sources, a fallback summary if the request
            failed, or None for an empty transcript
        """
        if not transcript:
            return None

        prompt = build_analysis_prompt(format_transcript(transcript))
        try:
            response = await self._generate(prompt)
        except AnalysisError as e:
            logger.error(f"Search grounding failed: {e}")
            return AnalysisResult(summary=ANALYSIS_ERROR_TEXT, sources=[])

        summary = extract_text(response) or ANALYSIS_EMPTY_TEXT
        sources = extract_sources(response)
        logger.info(f"Call analysis complete with {len(sources)} source(s)")
        return AnalysisResult(summary=summary, sources=sources)


analyzer = GroundingAnalyzer()
