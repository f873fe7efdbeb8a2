# interviewer.py
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from errors import InputError
from llm_client import chat_completion_content
from qa_parser import ParsedResponse, TARGET_COUNT, parse_interview_response

LOG = logging.getLogger("interviewer")

TEXT_STYLE_MAX_TOKENS = 2000
JSON_STYLE_MAX_TOKENS = 8000

TEXT_STYLE_SYSTEM_PROMPT = (
    "你是一个专业的面试官，请根据简历和岗位描述生成10个高质量的面试题目和参考答案。\n\n"
    "要求：\n"
    "1. 必须生成10个问题，不能多也不能少\n"
    "2. 问题分类：\n"
    "   - 3个问题针对简历中的项目和工作经历进行具体提问\n"
    "   - 1个问题针对岗位技能或业务匹配性进行提问\n"
    "   - 6个问题涵盖技术能力、问题解决能力、团队协作、沟通能力等方面，需根据简历和岗位要求进行综合提问\n"
    "3. 每个问题都要结合具体的简历内容和岗位要求，具有针对性\n"
    "4. 每个问题都必须提供参考答案\n"
    "5. 参考答案要站在用人方的角度，帮助面试官评估候选人\n"
    "6. 答案要简洁，罗列3-5条核心思路即可\n"
    "7. 不要使用任何格式符号如*、-、#等，直接输出纯文本\n"
    "8. 答案格式：用1.2.3.等数字编号，每个编号对应一个核心思路\n\n"
    "输出格式：\n"
    "问题1：[具体问题内容]\n"
    "参考答案：\n"
    "1. [核心思路1]\n"
    "2. [核心思路2]\n"
    "3. [核心思路3]\n\n"
    "问题2：[具体问题内容]\n"
    "参考答案：\n"
    "1. [核心思路1]\n"
    "2. [核心思路2]\n\n"
    "...以此类推，共10个问题"
)

JSON_STYLE_PROMPT = """基于以下信息生成10个面试题目：

简历内容：{resume}

岗位描述：{job}

要求：
1. 生成2-3个过往项目经验类问题
2. 生成1个核心技能类问题
3. 生成1个学习能力类问题
4. 生成2个公司业务类问题
5. 生成3-4个其他综合类问题

每个问题的建议答案要：
- 站在用人方满意的角度，展示候选人的价值
- 结合候选人简历中的具体项目、技能、经验
- 用1.2.3.的数字格式罗列要点
- 突出候选人的优势和对岗位的匹配度
- 分行显示，每行一个要点

请严格按照以下JSON格式返回：
[
  {{
    "question": "问题内容",
    "answer": "站在用人方角度的建议答案，用1.2.3.格式罗列，结合简历背景展示价值"
  }}
]"""

MISSING_BOTH_MSG = "请先输入简历内容和岗位描述"
MISSING_ANY_MSG = "请先上传简历或输入岗位描述"
NOT_TEXT_MSG = "resume_text and job_description must be strings"


def build_text_style_messages(resume_text: str, job_description: str) -> List[Dict[str, str]]:
    user_prompt = (
        f"简历内容：\n{resume_text}\n\n"
        f"岗位描述：\n{job_description}\n\n"
        "请生成10个面试题目："
    )
    return [
        {"role": "system", "content": TEXT_STYLE_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_json_style_messages(resume_text: str, job_description: str) -> List[Dict[str, str]]:
    prompt = JSON_STYLE_PROMPT.format(
        resume=resume_text or "未提供简历内容",
        job=job_description or "未提供",
    )
    return [{"role": "user", "content": prompt}]


def build_request(resume_text: str, job_description: str, style: str = "text") -> Dict[str, object]:
    """Validate the inputs for a prompt style and return messages + max_tokens.

    The delimited-text style needs both inputs; the JSON style works from
    either one.
    """
    if not isinstance(resume_text or "", str) or not isinstance(job_description or "", str):
        raise InputError(NOT_TEXT_MSG)
    resume_text = (resume_text or "").strip()
    job_description = (job_description or "").strip()

    if style == "text":
        if not resume_text or not job_description:
            raise InputError(MISSING_BOTH_MSG)
        return {
            "messages": build_text_style_messages(resume_text, job_description),
            "max_tokens": TEXT_STYLE_MAX_TOKENS,
        }
    if style == "json":
        if not resume_text and not job_description:
            raise InputError(MISSING_ANY_MSG)
        return {
            "messages": build_json_style_messages(resume_text, job_description),
            "max_tokens": JSON_STYLE_MAX_TOKENS,
        }
    raise InputError(f"unknown style: {style}")


def generate_interview_qa(
    resume_text: str,
    job_description: str,
    *,
    style: str = "text",
    model: str,
    temperature: float = 0.7,
    target_count: int = TARGET_COUNT,
    referer: Optional[str] = None,
    title: Optional[str] = None,
) -> ParsedResponse:
    """Ask the model for interview questions and recover the Q/A list."""
    req = build_request(resume_text, job_description, style)
    LOG.info(
        "generating questions: style=%s model=%s resume_len=%d job_len=%d",
        style, model, len(resume_text or ""), len(job_description or ""),
    )
    content = chat_completion_content(
        messages=req["messages"],
        model=model,
        max_tokens=req["max_tokens"],
        temperature=temperature,
        referer=referer,
        title=title,
    )
    return parse_interview_response(content, target_count)
