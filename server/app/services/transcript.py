import logging
import re
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import TranscriptError

logger = logging.getLogger(__name__)

_TIMESTAMP_LINE = re.compile(r"^\d{2}:\d{2}(:\d{2})?[.,]\d{3}\s+-->\s+")
_CUE_NUMBER = re.compile(r"^\d+$")


def strip_webvtt(text: str) -> str:
    """Drop the WEBVTT header, cue numbers and timing lines, keep the spoken text."""
    if "-->" not in text:
        return text.strip()

    lines = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("WEBVTT") or line.startswith("NOTE"):
            continue
        if _TIMESTAMP_LINE.match(line) or _CUE_NUMBER.match(line):
            continue
        lines.append(line)
    return " ".join(lines)


def _join_segments(segments: list) -> str:
    parts = []
    for segment in segments:
        if isinstance(segment, dict):
            parts.append(segment.get("text") or segment.get("content") or "")
        elif isinstance(segment, str):
            parts.append(segment)
    return " ".join(p.strip() for p in parts if p and p.strip())


def normalize_transcript(payload: Any) -> str:
    """
    The transcript API answers either with a list of timed caption segments
    or with an object holding a `transcript` field (a VTT blob or a segment list).
    Both shapes collapse to one plain string.
    """
    if isinstance(payload, list):
        return _join_segments(payload).strip()

    if isinstance(payload, dict):
        transcript = payload.get("transcript")
        if transcript is None:
            transcript = payload.get("text") or payload.get("content")
        if isinstance(transcript, list):
            return _join_segments(transcript).strip()
        if isinstance(transcript, str):
            return strip_webvtt(transcript)
        return ""

    if isinstance(payload, str):
        return strip_webvtt(payload)

    return ""


class TranscriptService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        language: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SCRAPE_CREATORS_API_KEY
        self.base_url = base_url or settings.TRANSCRIPT_API_URL
        self.language = language or settings.TRANSCRIPT_LANGUAGE
        self.timeout = timeout or settings.TRANSCRIPT_TIMEOUT
        self._client = client

    async def get_transcript(self, video_url: str) -> str:
        if not self.api_key:
            raise TranscriptError("Missing SCRAPE_CREATORS_API_KEY")

        params = {"url": video_url, "language": self.language}
        headers = {"x-api-key": self.api_key}

        try:
            if self._client is not None:
                response = await self._client.get(self.base_url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.base_url, params=params, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise TranscriptError(f"Transcript request failed for {video_url}: {e}") from e
        except ValueError as e:
            raise TranscriptError(f"Transcript response for {video_url} is not JSON") from e

        transcript = normalize_transcript(payload)
        logger.info("Fetched transcript for %s (%d chars)", video_url, len(transcript))
        return transcript
