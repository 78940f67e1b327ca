# backend/utils/llm_client.py

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import requests
from openai import OpenAI

from config import Config
from utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

# ---- model selector -> (provider, model id) ----
MODEL_MAP: Dict[str, Tuple[str, str]] = {
    "chatgpt": ("openai", "gpt-4o-mini"),
    "gemini": ("openrouter", "google/gemini-2.0-flash-exp:free"),
    "deepseek": ("openrouter", "deepseek/deepseek-chat"),
}
DEFAULT_MODEL = ("openai", "gpt-4o-mini")

_FENCE_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCE_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")


@dataclass
class LLMResult:
    """
    Parsed model output, tagged with whether it is real or a fallback.

    `raw` keeps the model's text so a fallback payload can echo it back.
    """
    data: Any
    is_fallback: bool = False
    error: Optional[str] = None
    raw: Optional[str] = None
    model: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


def resolve_model(name: Optional[str]) -> Tuple[str, str]:
    """Map a model selector ("chatgpt", "gemini", ...) to (provider, model id)."""
    return MODEL_MAP.get((name or "").strip().lower(), DEFAULT_MODEL)


def _client_for(provider: str) -> OpenAI:
    if provider == "openrouter":
        if not Config.OPENROUTER_API_KEY:
            raise UpstreamServiceError("LLM provider not configured", details="OPENROUTER_API_KEY is not set")
        return OpenAI(api_key=Config.OPENROUTER_API_KEY, base_url=Config.OPENROUTER_BASE_URL,
                      timeout=Config.HTTP_TIMEOUT)

    if not Config.OPENAI_API_KEY:
        raise UpstreamServiceError("LLM provider not configured", details="OPENAI_API_KEY is not set")
    return OpenAI(api_key=Config.OPENAI_API_KEY, timeout=Config.HTTP_TIMEOUT)


def chat_completion(prompt: str,
                    model_name: str = "chatgpt",
                    temperature: float = 0.7,
                    max_tokens: int = 2000) -> str:
    """
    Sends a single-turn prompt to the provider behind `model_name`
    and returns the model's text output ("" when the reply is empty).
    """
    provider, model = resolve_model(model_name)
    client = _client_for(provider)

    logger.debug("chat completion via %s/%s (prompt len=%d)", provider, model, len(prompt))
    try:
        response = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except Exception as e:
        logger.exception("chat completion failed")
        raise UpstreamServiceError("LLM request failed", details=str(e)) from e

    content = response.choices[0].message.content or ""
    logger.debug("model returned text len=%d", len(content))
    return content


def openrouter_chat(messages: list,
                    model: str = "deepseek/deepseek-chat",
                    temperature: float = 0.7,
                    max_tokens: int = 150) -> str:
    """
    Plain HTTP call to the OpenRouter chat endpoint.
    Raises UpstreamServiceError on a non-2xx response.
    """
    if not Config.OPENROUTER_API_KEY:
        raise UpstreamServiceError("LLM provider not configured", details="OPENROUTER_API_KEY is not set")

    url = f"{Config.OPENROUTER_BASE_URL.rstrip('/')}/chat/completions"
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {Config.OPENROUTER_API_KEY}",
    }
    payload = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }

    r = requests.post(url, headers=headers, json=payload, timeout=Config.HTTP_TIMEOUT)
    if not r.ok:
        logger.error("OpenRouter API error: %s %s", r.status_code, r.reason)
        raise UpstreamServiceError("OpenRouter API error", details=f"{r.status_code} - {r.text}")

    data = r.json()
    choices = data.get("choices") or [{}]
    return ((choices[0].get("message") or {}).get("content") or "").strip()


def strip_code_fence(text: str) -> str:
    """Remove a ```json ... ``` (or bare ```) wrapper around model output."""
    if not isinstance(text, str):
        return ""
    if "```json" in text:
        match = _FENCE_JSON.search(text)
        if match:
            return match.group(1)
    elif "```" in text:
        match = _FENCE_ANY.search(text)
        if match:
            return match.group(1)
    return text


def try_parse_json(text: str) -> Optional[Any]:
    """
    Safely parse JSON returned by the LLM.
    Returns None when nothing parseable is found.
    """
    if not isinstance(text, str) or not text.strip():
        return None

    cleaned = strip_code_fence(text)

    # Try direct parse
    try:
        return json.loads(cleaned)
    except ValueError:
        pass

    # Try extracting JSON object inside text
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except ValueError:
            pass
    return None
