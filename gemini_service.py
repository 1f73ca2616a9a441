"""
Remote collaborators backed by the Gemini API:

- GeminiImpactAnalyzer.analyze(content, mime_hint) -> AnalysisResult
- GeminiVisualizer.visualize(summary, score) -> image handle (data URL)

Both try each configured API key in turn, starting from the last key that worked.
"""

import json
import logging
import re
import threading
import time
from io import BytesIO
from typing import Callable, List, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from api.prompts import (
    IMPACT_ANALYSIS_PROMPT,
    IMPACT_SYSTEM_INSTRUCTION,
    TEXT_INPUT_TEMPLATE,
    VISUALIZATION_PROMPT,
    scene_for_score,
)
from exceptions import AnalysisContractError, AnalysisError, VisualizationError
from image_resizer import make_badge_data_url
from models import AnalysisResult, ItemCategory, MainCategory

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
# Video/audio above this size go through the File API instead of inline bytes.
INLINE_UPLOAD_LIMIT = 15 * 1024 * 1024
FILE_POLL_INTERVAL = 2

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "summary": types.Schema(type=types.Type.STRING, description="A concise summary of the analyzed content and its environmental context."),
        "mainCategory": types.Schema(type=types.Type.STRING, enum=[c.value for c in MainCategory]),
        "totalCarbonScore": types.Schema(type=types.Type.INTEGER, description="Impact score from 0 (eco-friendly) to 100 (high carbon footprint)."),
        "generalTips": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
        "items": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "id": types.Schema(type=types.Type.STRING),
                    "name": types.Schema(type=types.Type.STRING),
                    "category": types.Schema(type=types.Type.STRING, enum=[c.value for c in ItemCategory]),
                    "carbonFootprint": types.Schema(type=types.Type.NUMBER, description="Estimated grams of CO2e."),
                    "impactDescription": types.Schema(type=types.Type.STRING),
                    "suggestion": types.Schema(type=types.Type.STRING),
                    "box": types.Schema(
                        type=types.Type.OBJECT,
                        description="Normalized 0-1 bounding box, only for still images.",
                        properties={
                            "ymin": types.Schema(type=types.Type.NUMBER),
                            "xmin": types.Schema(type=types.Type.NUMBER),
                            "ymax": types.Schema(type=types.Type.NUMBER),
                            "xmax": types.Schema(type=types.Type.NUMBER),
                        },
                    ),
                },
                required=["id", "name", "category", "carbonFootprint", "impactDescription", "suggestion"],
            ),
        ),
    },
    required=["summary", "mainCategory", "totalCarbonScore", "items", "generalTips"],
)


class GeminiKeyRing:
    """
    Rotates through API keys. The index of the last key that worked is kept in
    Redis when a client is given, so every worker process starts from it.
    """

    def __init__(self, api_keys: List[str], redis_client=None, index_key: str = "current_gemini_key_index"):
        self.api_keys = [key for key in api_keys if key]
        self.redis = redis_client
        self.index_key = index_key
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self):
        return len(self.api_keys)

    def start_index(self) -> int:
        if self.redis is not None:
            try:
                return int(self.redis.get(self.index_key) or 0) % max(len(self.api_keys), 1)
            except Exception as e:
                logger.warning(f"Could not read active Gemini key index: {e}")
        with self._lock:
            return self._index

    def mark_good(self, index: int):
        with self._lock:
            self._index = index
        if self.redis is not None:
            try:
                self.redis.set(self.index_key, index)
            except Exception as e:
                logger.warning(f"Could not store active Gemini key index: {e}")

    def call(self, fn: Callable, error_cls):
        """Runs fn(api_key) with each key in turn until one succeeds."""
        if not self.api_keys:
            raise error_cls("No Gemini API keys configured")

        start = self.start_index()
        last_error = None
        for i in range(len(self.api_keys)):
            index = (start + i) % len(self.api_keys)
            try:
                logger.info(f"--> Trying Gemini API Key #{index + 1}")
                result = fn(self.api_keys[index])
                self.mark_good(index)
                return result
            except Exception as e:
                logger.warning(f"Gemini API Key #{index + 1} failed: {e}")
                last_error = e
        logger.error(f"All Gemini API keys failed. Last error: {last_error}")
        raise error_cls(f"All Gemini API keys failed: {last_error}") from last_error


def _strip_json_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json") and cleaned.endswith("```"):
        return cleaned.removeprefix("```json").removesuffix("```").strip()
    if cleaned.startswith("```") and cleaned.endswith("```"):
        return cleaned.removeprefix("```").removesuffix("```").strip()
    return cleaned


def parse_analysis_response(text: Optional[str]) -> AnalysisResult:
    """
    Turns the model's JSON text into an AnalysisResult. Out-of-contract payloads
    (unknown categories, score out of range, bad boxes) are rejected, not repaired.
    """
    if not text:
        raise AnalysisError("Empty response from Gemini")

    cleaned = _strip_json_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r'\{[\s\S]*\}', cleaned)
        if not match:
            logger.error(f"Could not parse AI response as JSON. Raw response (first 500 chars): {text[:500]}")
            raise AnalysisError("Could not parse AI response as JSON")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error(f"Could not parse AI response as JSON: {e}. Raw response (first 500 chars): {text[:500]}")
            raise AnalysisError("Could not parse AI response as JSON") from e

    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError as e:
        logger.error(f"AI response violates the result contract: {e}")
        raise AnalysisContractError("AI response violates the result contract", details=e.errors(include_url=False, include_context=False, include_input=False)) from e


class GeminiImpactAnalyzer:
    def __init__(self, key_ring: GeminiKeyRing, model: str = DEFAULT_ANALYSIS_MODEL,
                 client_factory=None, inline_limit: int = INLINE_UPLOAD_LIMIT):
        self.key_ring = key_ring
        self.model = model
        self.client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self.inline_limit = inline_limit

    def analyze(self, content: bytes, mime_hint: str) -> AnalysisResult:
        response_text = self.key_ring.call(lambda key: self._generate(key, content, mime_hint), AnalysisError)
        result = parse_analysis_response(response_text)
        logger.info(f"AI analysis result: {result.mainCategory.value}, score {result.totalCarbonScore}, {len(result.items)} items")
        return result

    def _generate(self, api_key: str, content: bytes, mime_hint: str) -> Optional[str]:
        client = self.client_factory(api_key)
        uploaded = None
        try:
            if mime_hint == "text/plain":
                media_part = TEXT_INPUT_TEMPLATE.format(text=content.decode("utf-8", errors="replace"))
            elif len(content) > self.inline_limit and mime_hint.split("/")[0] in ("video", "audio"):
                uploaded = self._upload(client, content, mime_hint)
                media_part = uploaded
            else:
                media_part = types.Part.from_bytes(data=content, mime_type=mime_hint)

            response = client.models.generate_content(
                model=self.model,
                contents=[media_part, IMPACT_ANALYSIS_PROMPT],
                config=types.GenerateContentConfig(
                    system_instruction=IMPACT_SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=ANALYSIS_SCHEMA,
                ),
            )
            return response.text
        finally:
            if uploaded is not None:
                try:
                    client.files.delete(name=uploaded.name)
                    logger.info(f"Deleted temporary file {uploaded.name} from Gemini.")
                except Exception as del_e:
                    logger.error(f"Failed to delete temporary file from Gemini: {del_e}")

    def _upload(self, client, content: bytes, mime_hint: str):
        logger.info(f"Uploading {len(content)} bytes ({mime_hint}) to Gemini File API...")
        resource = client.files.upload(file=BytesIO(content), config=types.UploadFileConfig(mime_type=mime_hint))
        while resource.state.name == "PROCESSING":
            time.sleep(FILE_POLL_INTERVAL)
            resource = client.files.get(name=resource.name)
        if resource.state.name == "FAILED":
            raise AnalysisError("Gemini File API processing failed.")
        return resource


class GeminiVisualizer:
    def __init__(self, key_ring: GeminiKeyRing, model: str = DEFAULT_IMAGE_MODEL, client_factory=None):
        self.key_ring = key_ring
        self.model = model
        self.client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))

    def visualize(self, summary: str, score: int) -> str:
        prompt = VISUALIZATION_PROMPT.format(summary=summary, score=score, scene=scene_for_score(score))
        image_bytes, mime_type = self.key_ring.call(lambda key: self._generate(key, prompt), VisualizationError)
        return make_badge_data_url(image_bytes, mime_type)

    def _generate(self, api_key: str, prompt: str):
        client = self.client_factory(api_key)
        response = client.models.generate_content(model=self.model, contents=prompt)

        candidates = response.candidates or []
        parts = candidates[0].content.parts if candidates and candidates[0].content else None
        for part in parts or []:
            if part.inline_data and part.inline_data.data:
                return part.inline_data.data, part.inline_data.mime_type or "image/png"
        raise VisualizationError("No image data found in response")
