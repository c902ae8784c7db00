"""
LLM client interface and response parsing for blueprint extraction.

Providers implement BaseLLMClient; everything else here is pure text
handling (chunking source text, pulling JSON out of a model reply,
normalizing tags) and never sees the network.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

# Source text limits in characters
MIN_TEXT_LENGTH = 100
MAX_CHARS = 50000
LONG_TEXT_THRESHOLD = 10000
CHUNK_SIZE = 7000

MAX_TAG_LENGTH = 10
MAX_TAGS = 7

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")
_TRAILING_PARTICLE_RE = re.compile(r"[のにをとがはでへや]$")
_SENTENCE_PUNCT_RE = re.compile(r"[、。？！]")


class BaseLLMClient(ABC):
    """Provider-agnostic text generation interface."""

    model_name: str = ""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Generate a completion for prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            temperature: Overrides the provider default when given
            max_tokens: Maximum output tokens

        Returns:
            The model's reply text
        """
        pass


class BlueprintParseError(ValueError):
    """Raised when a model reply does not contain a usable JSON object."""


def split_text_into_chunks(text: str, chunk_size: int = CHUNK_SIZE) -> List[str]:
    """
    Split text into chunks of at most chunk_size characters, paragraph first.

    Paragraphs longer than chunk_size are cut at fixed width.
    """
    chunks: List[str] = []
    current = ""

    for para in _PARAGRAPH_SPLIT_RE.split(text):
        if len(current) + len(para) + 2 > chunk_size:
            if current:
                chunks.append(current.strip())
            if len(para) > chunk_size:
                chunks.extend(para[i:i + chunk_size] for i in range(0, len(para), chunk_size))
                current = ""
            else:
                current = para
        else:
            current += ("\n\n" if current else "") + para

    if current.strip():
        chunks.append(current.strip())

    return chunks


def normalize_tags(tags: Any) -> List[str]:
    """
    Clean model-produced tags into short noun labels.

    Trims, cuts to 10 characters, drops empties, tags ending in a particle
    and sentence-like tags, removes duplicates and keeps at most 7.
    """
    if not isinstance(tags, list):
        return []

    result: List[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()[:MAX_TAG_LENGTH]
        if not tag:
            continue
        if _TRAILING_PARTICLE_RE.search(tag) or _SENTENCE_PUNCT_RE.search(tag):
            continue
        if tag not in result:
            result.append(tag)
    return result[:MAX_TAGS]


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the first JSON object out of a model reply.

    Strips a ```json fenced block if present.

    Raises:
        BlueprintParseError: If no JSON object can be decoded
    """
    json_str = text or ""
    block = _CODE_BLOCK_RE.search(json_str)
    if block:
        json_str = block.group(1)
    obj = _JSON_OBJECT_RE.search(json_str)
    if obj:
        json_str = obj.group(0)
    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise BlueprintParseError(f"Model reply is not valid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise BlueprintParseError("Model reply JSON is not an object")
    return parsed


def parse_blueprint(text: str) -> Dict[str, Any]:
    """
    Parse a model reply into a blueprint dict with a separate "tags" key.

    Missing fields are filled with empty values; missing constraints
    default to true with daily_details_min 3. Constraint values that are
    present are passed through unchanged, so a "false" stays non-true.
    """
    parsed = extract_json_object(text)
    constraints = parsed.get("constraints")
    if not isinstance(constraints, dict):
        constraints = {}

    def _flag(name: str) -> Any:
        # Absent means true
        value = constraints.get(name)
        return True if value is None else value

    return {
        "tags": normalize_tags(parsed.get("tags") or []),
        "anomaly": parsed.get("anomaly") or "",
        "normal_rule": parsed.get("normal_rule") or "",
        "irreversible_point": parsed.get("irreversible_point") or "",
        "reader_understands": parsed.get("reader_understands") or "",
        "reader_cannot_understand": parsed.get("reader_cannot_understand") or "",
        "constraints": {
            "no_explanations": _flag("no_explanations"),
            "single_anomaly_only": _flag("single_anomaly_only"),
            "no_emotion_words": _flag("no_emotion_words"),
            "no_clean_resolution": _flag("no_clean_resolution"),
            "daily_details_min": constraints.get("daily_details_min", 3),
        },
        "allowed_subgenres": parsed.get("allowed_subgenres") or [],
        "detail_bank": parsed.get("detail_bank") or [],
        "ending_style": parsed.get("ending_style") or "",
    }
