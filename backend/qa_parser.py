# qa_parser.py
from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, List, Optional

from errors import ResponseParseError

LOG = logging.getLogger("qa_parser")

# ----------------------------
# Constants
# ----------------------------
TARGET_COUNT = 10

PLACEHOLDER_QUESTION = "请详细描述您在相关领域的经验和能力"
PLACEHOLDER_ANSWER = (
    "1. 此问题需要根据具体情况进行回答，建议结合个人经验和项目实践来阐述\n"
    "2. 可以从技术实现、问题解决思路、团队协作等角度来回答\n"
    "3. 重点突出个人在该领域的专业能力和学习成长"
)

QUESTION_MARKER_RE = re.compile(r"问题\d+：")
ANSWER_MARKER = "参考答案："

# a word after the fence is only a language tag when a newline follows it
FENCE_OPEN_RE = re.compile(r"^```(?:json(?![A-Za-z0-9_+-])\s*|[A-Za-z0-9_+-]*[ \t]*(?:\r?\n|$))?")
FENCE_CLOSE_RE = re.compile(r"\s*```$")

PARSE_FAILED_MSG = "无法解析API返回的JSON格式"


@dataclass(frozen=True)
class QAPair:
    question: str
    answer: str

    def to_dict(self):
        return {"question": self.question, "answer": self.answer}


@dataclass(frozen=True)
class Decoded:
    records: List[QAPair]
    source: Optional[str]  # "json", "text" or None when nothing decoded


@dataclass(frozen=True)
class ParsedResponse:
    records: List[QAPair]
    source: str  # "json", "text", "repaired" or "fallback"

    def to_dicts(self):
        return [r.to_dict() for r in self.records]


# ----------------------------
# Normalizer
# ----------------------------
def normalize_response(text: Optional[str]) -> str:
    """Strip whitespace and a surrounding ``` / ```json fence."""
    cleaned = (text or "").strip()
    while cleaned.startswith("```"):
        cleaned = FENCE_OPEN_RE.sub("", cleaned, count=1)
        cleaned = FENCE_CLOSE_RE.sub("", cleaned).strip()
    return cleaned


# ----------------------------
# Decoders
# ----------------------------
def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _strict_decode_array(text: str) -> List[QAPair]:
    """Strict Format B decode. Raises ValueError on any shape mismatch."""
    try:
        data = json.loads(text)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    records: List[QAPair] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"entry {idx} is not an object")
        records.append(QAPair(
            question=_as_text(item.get("question")),
            answer=_as_text(item.get("answer")),
        ))
    return records


def decode_delimited(text: str) -> List[QAPair]:
    """Format A decode: `问题N：...参考答案：...` blocks.

    Text before the first question marker is discarded and a block with no
    answer marker is skipped.
    """
    sections = QUESTION_MARKER_RE.split(text or "")
    records: List[QAPair] = []
    for section in sections[1:]:
        section = section.strip()
        if not section:
            continue
        parts = section.split(ANSWER_MARKER)
        if len(parts) < 2:
            continue
        records.append(QAPair(question=parts[0].strip(), answer=parts[1].strip()))
    return records


def decode_structured(text: str) -> Decoded:
    """Try Format B when the text looks like an array, then Format A."""
    if text.startswith("["):
        try:
            return Decoded(_strict_decode_array(text), "json")
        except ValueError as e:  # json.JSONDecodeError is a ValueError
            LOG.info("strict JSON decode failed: %s", e)

    records = decode_delimited(text)
    if records:
        return Decoded(records, "text")
    return Decoded([], None)


def repair_truncated(text: str) -> Optional[List[QAPair]]:
    """Cut a JSON-shaped text after its last `}` and reclose the array.

    Recovers output cut off mid-record by a token limit; the trailing
    unterminated object is dropped.
    """
    if not text.startswith("["):
        return None
    last_brace = text.rfind("}")
    if last_brace == -1:
        return None
    candidate = text[: last_brace + 1] + "]"
    try:
        return _strict_decode_array(candidate)
    except ValueError as e:
        LOG.info("truncation repair failed: %s", e)
        return None


def extract_embedded_array(raw_text: str) -> Optional[List[QAPair]]:
    """Decode the first `[...]` span (non-greedy) found anywhere in the text."""
    text = raw_text or ""
    # same span as the non-greedy \[[\s\S]*?\] match, found in linear time
    start = text.find("[")
    end = text.find("]", start) if start != -1 else -1
    if end == -1:
        return None
    try:
        return _strict_decode_array(text[start : end + 1])
    except ValueError as e:
        LOG.info("embedded array decode failed: %s", e)
        return None


# ----------------------------
# Completer
# ----------------------------
def complete_records(records: List[QAPair], target_count: int = TARGET_COUNT) -> List[QAPair]:
    """Pad up to target_count with placeholders and fill empty answers.

    Longer lists are returned at their full length.
    """
    out = list(records)
    while len(out) < target_count:
        out.append(QAPair(question=PLACEHOLDER_QUESTION, answer=PLACEHOLDER_ANSWER))
    return [
        r if r.answer.strip() else replace(r, answer=PLACEHOLDER_ANSWER)
        for r in out
    ]


# ----------------------------
# Main entry
# ----------------------------
def parse_interview_response(raw_text: Optional[str], target_count: int = TARGET_COUNT) -> ParsedResponse:
    """Recover question/answer records from raw model output.

    Stages: normalize, decode (JSON array then delimited text), repair a
    truncated array, extract an embedded array, then complete the list.
    Raises ResponseParseError when no stage yields records.
    """
    text = normalize_response(raw_text)
    decoded = decode_structured(text)
    records: Optional[List[QAPair]] = decoded.records if decoded.source else None
    source = decoded.source

    if records is None and text.startswith("["):
        records = repair_truncated(text)
        source = "repaired"

    if records is None:
        records = extract_embedded_array(raw_text or "")
        source = "fallback"

    if records is None:
        LOG.warning("could not decode model output (%d chars): %r", len(raw_text or ""), (raw_text or "")[:200])
        raise ResponseParseError(PARSE_FAILED_MSG)

    LOG.info("decoded %d records via %s", len(records), source)
    return ParsedResponse(complete_records(records, target_count), source)
