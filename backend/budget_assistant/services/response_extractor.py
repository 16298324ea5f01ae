"""
Separates display text from an embedded chart specification.

The reasoning backend is instructed to append a JSON chart descriptor to its
answer. Matching runs in two stages and the first stage that matches is used
exclusively:

1. A fenced code block (``` or ```json) holding a single JSON object.
2. Otherwise, a JSON object that ends the text and mentions both "type" and
   "data" keys.

The matched JSON must parse and carry both `type` and `data` before it is
accepted as a VisualizationSpec. Every failure path degrades to "no
visualization" with the text returned unchanged; split() never raises.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ExtractionError
from ..models.visualization import VisualizationSpec

logger = structlog.get_logger()

# Fenced block, optionally tagged json; captures the block body
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

# Only the tail of long answers is scanned for a trailing object
MAX_TRAILING_SCAN_CHARS = 50_000

_REQUIRED_KEYS = ("type", "data")


@dataclass
class ExtractedResponse:
    """Display text plus the chart found in it, if any."""

    display_text: str
    visualization: VisualizationSpec | None = None

    @property
    def has_visualization(self) -> bool:
        return self.visualization is not None


@dataclass
class _Match:
    start: int
    end: int
    payload: str


class ResponseExtractor:
    """Two-stage chart extractor for assistant answers."""

    def __init__(self, max_trailing_scan_chars: int = MAX_TRAILING_SCAN_CHARS):
        self.max_trailing_scan_chars = max_trailing_scan_chars
        self._decoder = json.JSONDecoder()

    def split(self, raw_text: str) -> ExtractedResponse:
        """
        Split an answer into display text and optional visualization.

        Args:
            raw_text: Final assistant text

        Returns:
            ExtractedResponse; display_text equals raw_text when nothing usable
            was found
        """
        try:
            return self._split(raw_text)
        except Exception as e:
            logger.warning(
                "Chart extraction failed, returning text unchanged",
                error=str(e),
                error_type=type(e).__name__,
            )
            return ExtractedResponse(display_text=raw_text or "")

    def _split(self, raw_text: str) -> ExtractedResponse:
        if not raw_text:
            return ExtractedResponse(display_text=raw_text or "")

        match = self._find_fenced_block(raw_text) or self._find_trailing_object(
            raw_text
        )
        if match is None:
            return ExtractedResponse(display_text=raw_text)

        try:
            visualization = self._parse(match.payload)
        except ExtractionError as e:
            logger.debug(
                "Discarding embedded chart JSON",
                reason=e.message,
                **e.context,
            )
            return ExtractedResponse(display_text=raw_text)

        display_text = (raw_text[: match.start] + raw_text[match.end :]).strip()
        logger.debug(
            "Visualization extracted",
            chart_type=visualization.type,
            points=len(visualization.data),
        )
        return ExtractedResponse(display_text=display_text, visualization=visualization)

    def _find_fenced_block(self, text: str) -> _Match | None:
        found = _FENCED_BLOCK.search(text)
        if found is None:
            return None
        return _Match(start=found.start(), end=found.end(), payload=found.group(1))

    def _find_trailing_object(self, text: str) -> _Match | None:
        """Locate the outermost JSON object that ends the text."""
        stripped = text.rstrip()
        if not stripped.endswith("}"):
            return None

        window_start = max(0, len(stripped) - self.max_trailing_scan_chars)
        tail = stripped[window_start:]
        if not all(f'"{key}"' in tail for key in _REQUIRED_KEYS):
            return None

        position = stripped.find("{", window_start)
        while position != -1:
            try:
                value, end = self._decoder.raw_decode(stripped, position)
            except (json.JSONDecodeError, RecursionError):
                value, end = None, -1
            if end == len(stripped) and isinstance(value, dict):
                return _Match(
                    start=position, end=end, payload=stripped[position:end]
                )
            position = stripped.find("{", position + 1)

        return None

    def _parse(self, payload: str) -> VisualizationSpec:
        try:
            value: Any = json.loads(payload.strip())
        except (json.JSONDecodeError, RecursionError) as e:
            raise ExtractionError(
                "Chart JSON is not valid JSON",
                error=str(e),
                error_type=type(e).__name__,
            ) from e

        if not isinstance(value, dict):
            raise ExtractionError(
                "Chart JSON is not an object", value_type=type(value).__name__
            )

        missing = [key for key in _REQUIRED_KEYS if key not in value]
        if missing:
            raise ExtractionError("Chart JSON lacks required keys", missing=missing)

        try:
            return VisualizationSpec.model_validate(value)
        except PydanticValidationError as e:
            raise ExtractionError(
                "Chart JSON does not describe a chart",
                errors=e.error_count(),
            ) from e


_default_extractor = ResponseExtractor()


def split_response(raw_text: str) -> ExtractedResponse:
    """Split using the module-level extractor."""
    return _default_extractor.split(raw_text)
