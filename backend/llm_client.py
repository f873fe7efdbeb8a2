from __future__ import annotations
import logging
import os
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from errors import ConfigurationError, UpstreamError

LOG = logging.getLogger("llm_client")

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TITLE = "Interview Helper"
LOCAL_REFERER = "http://localhost:3000"

MISSING_KEY_MSG = "API 密钥未配置"
CHAT_FAILED_MSG = "聊天 API 处理失败"

_client: OpenAI | None = None


def get_client() -> OpenAI:
    global _client
    if _client is None:
        api_key = os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY")
        if not api_key:
            LOG.error("chat gateway API key is not configured")
            raise ConfigurationError(MISSING_KEY_MSG)
        LOG.debug("API key prefix: %s", api_key[:10])
        _client = OpenAI(
            base_url=os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL),
            api_key=api_key,
        )
    return _client


def reset_client() -> None:
    global _client
    _client = None


def compute_referer(origin: Optional[str]) -> str:
    """OpenRouter checks HTTP-Referer against the domains allowed for the key."""
    if origin:
        return origin
    vercel_url = os.getenv("VERCEL_URL")
    if vercel_url:
        return f"https://{vercel_url}"
    return LOCAL_REFERER


def chat_completion(
    messages: List[Dict[str, Any]],
    model: str,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    referer: Optional[str] = None,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """POST a chat completion through the gateway and return the raw JSON body.

    Non-2xx responses raise UpstreamError with the vendor status and body.
    """
    client = get_client()
    params: Dict[str, Any] = {"model": model, "messages": messages}
    if max_tokens is not None:
        params["max_tokens"] = max_tokens
    if temperature is not None:
        params["temperature"] = temperature

    LOG.info("calling chat gateway: model=%s messages=%d", model, len(messages))
    try:
        completion = client.chat.completions.create(
            **params,
            extra_headers={
                "HTTP-Referer": referer or compute_referer(None),
                "X-Title": title or DEFAULT_TITLE,
            },
        )
    except openai.APIStatusError as e:
        body = e.response.text if e.response is not None else str(e)
        LOG.error("chat gateway error %s: %s", e.status_code, body)
        raise UpstreamError(f"API 请求失败: {e.status_code}", status_code=e.status_code, detail=body) from e
    except openai.APIError as e:
        LOG.error("chat gateway request failed: %s", e)
        raise UpstreamError(CHAT_FAILED_MSG, status_code=502, detail=str(e)) from e

    return completion.model_dump()


def chat_completion_content(**kwargs: Any) -> str:
    """Same as chat_completion but returns choices[0].message.content."""
    data = chat_completion(**kwargs)
    choices = data.get("choices") or []
    if not choices:
        return ""
    content = ((choices[0] or {}).get("message") or {}).get("content") or ""
    LOG.debug("raw LLM response snippet: %s...", content[:200])
    return content
