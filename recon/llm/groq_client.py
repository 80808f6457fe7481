"""
Minimal Groq chat-completions client returning parsed JSON.

Models often wrap JSON in code fences, prefix it with prose, or (on gateway
errors) answer with an HTML page. normalize_json_payload() extracts the
JSON body or raises LLMError.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import requests

from recon import config

logger = logging.getLogger(__name__)

_FENCED = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```', re.IGNORECASE)


class LLMError(RuntimeError):
    """Missing configuration, HTTP failure, or a reply that is not JSON."""


@dataclass
class LLMResponse:
    parsed: Any
    raw_text: str


def _json_span(text: str) -> str:
    """Slice from the first '{' or '[' to the last '}' or ']'."""
    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    if not starts:
        return text
    first = min(starts)
    last = max(text.rfind('}'), text.rfind(']'))
    if last > first:
        return text[first:last + 1].strip()
    return text


def normalize_json_payload(raw: Optional[str]) -> str:
    """
    Extract the JSON body from a model reply.

    Examples:
        >>> normalize_json_payload('```json\\n{"items": []}\\n```')
        '{"items": []}'
        >>> normalize_json_payload('Here you go: {"a": 1} Thanks!')
        '{"a": 1}'
    """
    if not raw or not isinstance(raw, str):
        raise LLMError("Empty LLM content.")

    payload = raw.strip()
    fenced = _FENCED.search(payload)
    if fenced and fenced.group(1):
        payload = fenced.group(1).strip()
    elif len(payload) > 1 and payload.startswith('`') and payload.endswith('`'):
        payload = payload[1:-1].strip()

    payload = payload.lstrip('\ufeff')
    payload = _json_span(payload)

    if payload.lstrip().startswith('<'):
        raise LLMError(f"LLM reply looks like HTML (error page?): {payload[:200]}")
    return payload


def _ensure_config() -> None:
    if not config.GROQ_API_KEY:
        raise LLMError("GROQ_API_KEY is not set.")
    if not config.GROQ_MODEL:
        raise LLMError("GROQ_MODEL is not set.")


def call_groq_json(prompt: str, temperature: float = 0, mock_result: Any = None) -> LLMResponse:
    """
    Send a single-message chat completion and parse the reply as JSON.

    With LLM_PROVIDER=mock the network is never touched: mock_result is
    returned as-is (an LLMError is raised when none is supplied).
    """
    if not prompt or not isinstance(prompt, str):
        raise LLMError("Invalid prompt.")

    if config.LLM_PROVIDER == 'mock':
        if mock_result is None:
            raise LLMError("LLM_PROVIDER is 'mock' but no mock result was supplied.")
        return LLMResponse(parsed=mock_result, raw_text=json.dumps(mock_result))

    _ensure_config()

    headers = {"Authorization": f"Bearer {config.GROQ_API_KEY}", "Content-Type": "application/json"}
    body = {
        "model": config.GROQ_MODEL,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }

    try:
        response = requests.post(config.GROQ_BASE_URL, headers=headers, json=body, timeout=config.GROQ_TIMEOUT)
    except requests.RequestException as e:
        raise LLMError(f"Groq request failed: {e}") from e

    if not response.ok:
        content_type = response.headers.get('content-type', '')
        raise LLMError(f"Groq error ({response.status_code}) [{content_type}]: {response.text[:500]}")

    try:
        data = json.loads(response.text)
    except ValueError:
        try:
            data = json.loads(_json_span(response.text))
        except ValueError as e:
            raise LLMError(f"Groq reply is not JSON: {e}") from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not content or not isinstance(content, str):
        raise LLMError("Empty reply from Groq model.")

    payload = normalize_json_payload(content)
    try:
        parsed = json.loads(payload)
    except ValueError as e:
        raise LLMError(f"Groq content is not JSON: {e}") from e

    logger.debug(f"Groq reply parsed ({len(content)} chars)")
    return LLMResponse(parsed=parsed, raw_text=content)
