"""
Vision extractor: read book titles and authors off a bookshelf photo.

OpenAIVisionExtractor talks to any OpenAI-compatible /chat/completions
endpoint with JSON output mode and expects ``{"books": [{"title", "author"}]}``
back. Calls are not retried here; callers surface the failure to the user.
"""

from __future__ import annotations

import base64
import json
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from shelfscan.catalog.models import Candidate, ExtractionResult
from shelfscan.errors import ExtractionFailed
from shelfscan.log import get_logger
from shelfscan.observability.metrics import metrics

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a book identification expert. Analyze the image and list all visible "
    "book titles and authors. Respond in JSON format with an array of books "
    "containing title and author fields."
)
USER_PROMPT = "Please identify all visible books in this image."

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class VisionExtractor(ABC):
    @abstractmethod
    def extract(self, image: bytes, content_type: str = "image/jpeg") -> ExtractionResult:
        """Candidates in the order the model listed them; may be empty."""


def parse_books_payload(content: Any) -> ExtractionResult:
    """Turn the model's message content into candidates.

    The content must be a string holding a JSON object with a ``books`` list.
    Entries without a usable title are skipped.
    """
    if content is not None and not isinstance(content, str):
        raise ExtractionFailed(
            f"Failed to analyze image: model content is {type(content).__name__}, expected text"
        )
    if not content or not content.strip():
        raise ExtractionFailed("Failed to analyze image: no content in model response")
    text = content.strip()
    m = _FENCE_RE.match(text)
    if m:
        text = m.group(1)
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ExtractionFailed(f"Failed to analyze image: model returned invalid JSON ({e})") from e
    if not isinstance(data, dict) or not isinstance(data.get("books"), list):
        raise ExtractionFailed("Failed to analyze image: model response has no 'books' list")

    candidates: List[Candidate] = []
    for i, entry in enumerate(data["books"]):
        if not isinstance(entry, dict):
            logger.warning("skipping book entry %d: not an object (%r)", i, entry)
            continue
        author = entry.get("author")
        try:
            candidates.append(Candidate(
                title=str(entry.get("title") or ""),
                author=str(author) if author is not None else None,
            ))
        except ValidationError:
            logger.warning("skipping book entry %d: missing title (%r)", i, entry)
    return ExtractionResult(candidates=candidates)


class OpenAIVisionExtractor(VisionExtractor):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o",
        timeout_seconds: int = 120,
        max_tokens: int = 2000,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, vision_settings) -> "OpenAIVisionExtractor":
        return cls(
            api_key=vision_settings.api_key,
            base_url=vision_settings.base_url,
            model=vision_settings.model,
            timeout_seconds=vision_settings.timeout_seconds,
            max_tokens=vision_settings.max_tokens,
        )

    def _build_payload(self, image: bytes, content_type: str) -> Dict[str, Any]:
        encoded = base64.b64encode(image).decode("ascii")
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{content_type};base64,{encoded}"}},
                    ],
                },
            ],
        }

    def extract(self, image: bytes, content_type: str = "image/jpeg") -> ExtractionResult:
        if not self.api_key:
            raise ExtractionFailed("Failed to analyze image: vision API key is not configured")
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        start = time.perf_counter()
        error = None
        try:
            resp = self._session.post(
                url,
                headers=headers,
                json=self._build_payload(image, content_type or "image/jpeg"),
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
            raw = resp.json()
            content = raw["choices"][0]["message"]["content"]
        except requests.exceptions.HTTPError as e:
            error = f"HTTP {e.response.status_code}: {e.response.text[:500]}"
            raise ExtractionFailed(f"Failed to analyze image: {error}") from e
        except requests.exceptions.RequestException as e:
            error = str(e)
            raise ExtractionFailed(f"Failed to analyze image: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            error = f"malformed response: {e}"
            raise ExtractionFailed(f"Failed to analyze image: {error}") from e
        finally:
            elapsed = time.perf_counter() - start
            metrics.vision_requests_total.labels(model=self.model).inc()
            metrics.vision_duration_seconds.labels(model=self.model).observe(elapsed)
            if error:
                metrics.vision_errors_total.labels(model=self.model).inc()
                logger.error("vision call failed after %.2fs: %s", elapsed, error)

        result = parse_books_payload(content)
        logger.info("vision model %s found %d candidate(s)", self.model, len(result.candidates))
        return result
