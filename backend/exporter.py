# exporter.py
import re
from typing import Iterable, List

from qa_parser import QAPair

EXPORT_FILENAME = "面试题目和答案.txt"
RECORD_SEPARATOR = "\n\n" + "=" * 50 + "\n\n"
COMPACT_MAX_LINES = 12

MAIN_POINT_RE = re.compile(r"^\d+\.\s")
THOUGHT_LABEL_RE = re.compile(r"思路：\s*")
BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
BLANK_LINES_RE = re.compile(r"\n\s*\n")


def is_main_point(line: str) -> bool:
    return bool(MAIN_POINT_RE.match(line.strip()))


def format_answer(answer: str, compact: bool = False) -> List[str]:
    """Split an answer into display lines.

    The compact variant also drops "思路：" labels and **bold** markers and
    keeps only the first 12 lines.
    """
    text = answer or ""
    if compact:
        text = THOUGHT_LABEL_RE.sub("", text)
        text = BOLD_RE.sub(r"\1", text)
        text = BLANK_LINES_RE.sub("\n", text).strip()
    lines = [ln.strip() for ln in text.split("\n") if ln.strip()]
    return lines[:COMPACT_MAX_LINES] if compact else lines


def _export_answer_lines(answer: str) -> List[str]:
    # numbered points keep their numbering; explanatory lines are indented
    return [ln if is_main_point(ln) else f"    {ln}" for ln in format_answer(answer)]


def export_text(records: Iterable[QAPair]) -> str:
    blocks = []
    for qa in records:
        lines = "\n".join(_export_answer_lines(qa.answer))
        blocks.append(f"问题：{qa.question}\n\n参考答案：\n{lines}")
    return RECORD_SEPARATOR.join(blocks)
