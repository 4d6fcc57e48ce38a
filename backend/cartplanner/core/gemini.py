import asyncio
import json
import logging
import os
import random
import re
from typing import Any, Dict, List, Optional

import httpx

from cartplanner.core.config import settings

logger = logging.getLogger(__name__)

# Service endpoint for Gemini API (v1beta)
API_BASE = "https://generativelanguage.googleapis.com/v1beta"

# Retry behavior for 429/503
MAX_RETRIES = int(os.environ.get("GEMINI_MAX_RETRIES", "5"))
MAX_BACKOFF_SECONDS = float(os.environ.get("GEMINI_MAX_BACKOFF_SECONDS", "20"))

CHECKLIST_PROMPT = """You are a helpful DIY shopping assistant. A user wants to build/create: "{project}"

Generate a comprehensive checklist of items they will need.
Each item has: name, category, priority ("essential" or "optional"), quantity (estimated, as text), notes (brief helpful note).

Focus on:
- Physical materials and tools needed
- Be specific but not overwhelming (5-12 items typically)
- Include both obvious and often-forgotten items
- Prioritize essential items first

Example for "backyard bar":
[
  {{"name": "Outdoor bar counter or cabinet", "category": "furniture", "priority": "essential", "quantity": "1", "notes": "Weather-resistant material recommended"}},
  {{"name": "Bar stools", "category": "furniture", "priority": "essential", "quantity": "4-6", "notes": "Choose height based on bar counter"}},
  {{"name": "Mini fridge", "category": "appliances", "priority": "essential", "quantity": "1", "notes": "Look for outdoor-rated models"}},
  {{"name": "String lights or LED strips", "category": "lighting", "priority": "optional", "quantity": "1 set", "notes": "Adds ambiance"}}
]

Return ONLY the JSON array. No markdown. No code fences. No extra text.
"""


class GeminiRequestError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class GeminiRateLimitError(GeminiRequestError):
    def __init__(self, message: str, retry_after_seconds: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, status_code=429, body=body)
        self.retry_after_seconds = retry_after_seconds


def _redact_key(s: str) -> str:
    """
    Redact 'key=...' in URLs or text so we never leak API keys in logs/responses.
    """
    if not s:
        return s
    return re.sub(r"(key=)([^&\s]+)", r"\1REDACTED", s)


def checklist_schema() -> Dict[str, Any]:
    """JSON Schema for Gemini structured output: an array of checklist items."""
    return {
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "category": {"type": "string"},
                "priority": {"type": "string", "enum": ["essential", "optional"]},
                "quantity": {"type": "string"},
                "notes": {"type": "string"},
            },
            "required": ["name", "category", "priority", "quantity", "notes"],
        },
    }


def extract_json_array(text: str) -> List[Any]:
    """
    Pull the checklist array out of model output.
    Handles bare JSON, ```json fenced blocks and chatter around the array.
    An object wrapping the array (e.g. {"checklist": [...]}) is unwrapped.
    """
    candidates = [text.strip()]

    fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
    if fenced:
        candidates.append(fenced.group(1).strip())

    greedy = re.search(r"\[.*\]", text, re.DOTALL)
    if greedy:
        candidates.append(greedy.group(0))

    for c in candidates:
        try:
            obj = json.loads(c)
        except ValueError:
            continue
        if isinstance(obj, list):
            return obj
        if isinstance(obj, dict):
            for v in obj.values():
                if isinstance(v, list):
                    return v

    raise ValueError("Could not parse checklist from AI response")


def _retry_after_seconds(resp: httpx.Response) -> Optional[float]:
    raw = resp.headers.get("retry-after")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


async def _sleep_for_retry(resp: httpx.Response, attempt: int) -> None:
    """
    Respect Retry-After header when present; otherwise exponential backoff with jitter.
    """
    wait = _retry_after_seconds(resp)
    if wait is not None:
        await asyncio.sleep(max(0.5, min(wait, MAX_BACKOFF_SECONDS)))
        return

    base = min(MAX_BACKOFF_SECONDS, 2 ** attempt)
    await asyncio.sleep(base + random.uniform(0.0, 0.5))


async def _send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: Dict[str, Any],
    json_payload: Optional[Dict[str, Any]] = None,
    max_retries: int = MAX_RETRIES,
) -> httpx.Response:
    """
    GET/POST with retries for 429/503. Returns the last response either way.
    """
    for attempt in range(max_retries + 1):
        resp = await client.request(method, url, params=params, json=json_payload)
        if resp.status_code in (429, 503) and attempt < max_retries:
            logger.warning("gemini: %s, retrying (attempt %s)", resp.status_code, attempt + 1)
            await _sleep_for_retry(resp, attempt)
            continue
        return resp
    return resp


def _raise_for_gemini(resp: httpx.Response, what: str) -> None:
    if resp.status_code < 400:
        return
    body = _redact_key(resp.text)[:2000]
    if resp.status_code == 429:
        wait = _retry_after_seconds(resp)
        raise GeminiRateLimitError(
            f"{what}: rate limited",
            retry_after_seconds=int(wait) if wait is not None else None,
            body=body,
        )
    raise GeminiRequestError(f"{what} failed: {resp.status_code}", status_code=resp.status_code, body=body)


def pick_model_from_list(models_payload: Dict[str, Any]) -> str:
    """
    Picks a model name (e.g. 'models/xxx') that supports generateContent,
    preferring Flash models.
    """
    models = models_payload.get("models", []) or []

    def supports_generate(m: Dict[str, Any]) -> bool:
        methods = m.get("supportedGenerationMethods") or []
        return any(str(x).lower() == "generatecontent" for x in methods)

    candidates = [m for m in models if supports_generate(m) and m.get("name")]
    if not candidates:
        raise GeminiRequestError("No models found that support generateContent")

    flash = [m for m in candidates if "flash" in m["name"].lower()]
    return (flash[0] if flash else candidates[0])["name"]


async def _resolve_model_name(client: httpx.AsyncClient, api_key: str) -> str:
    """
    Use GEMINI_MODEL when configured (normalized to 'models/...'),
    otherwise ask ListModels for one.
    """
    configured = (getattr(settings, "GEMINI_MODEL", "") or os.environ.get("GEMINI_MODEL", "")).strip()
    if configured:
        return configured if configured.startswith("models/") else f"models/{configured}"

    r = await _send_with_retry(client, "GET", f"{API_BASE}/models", params={"key": api_key})
    _raise_for_gemini(r, "Gemini ListModels")
    return pick_model_from_list(r.json())


async def generate_checklist(project_query: str) -> List[Dict[str, Any]]:
    """
    Ask Gemini for a shopping checklist for `project_query`.

    Returns the raw list of item dicts; validation into ChecklistItem is the
    caller's job. If the configured model 404s, falls back to ListModels once.
    """
    api_key = (getattr(settings, "GEMINI_API_KEY", "") or "").strip()
    if not api_key:
        raise GeminiRequestError("GEMINI_API_KEY is not set")

    payload = {
        "contents": [{"role": "user", "parts": [{"text": CHECKLIST_PROMPT.format(project=project_query)}]}],
        "generationConfig": {
            "response_mime_type": "application/json",
            "response_json_schema": checklist_schema(),
            "temperature": 0.4,
        },
    }

    async with httpx.AsyncClient(timeout=60) as client:
        model_name = await _resolve_model_name(client, api_key)
        url = f"{API_BASE}/{model_name}:generateContent"
        r = await _send_with_retry(client, "POST", url, params={"key": api_key}, json_payload=payload)

        if r.status_code == 404:
            logger.warning("gemini: model %s not found, picking one from ListModels", model_name)
            lr = await _send_with_retry(client, "GET", f"{API_BASE}/models", params={"key": api_key})
            _raise_for_gemini(lr, "Gemini ListModels")
            model_name = pick_model_from_list(lr.json())
            url = f"{API_BASE}/{model_name}:generateContent"
            r = await _send_with_retry(client, "POST", url, params={"key": api_key}, json_payload=payload)

        _raise_for_gemini(r, "Gemini request")
        data = r.json()

    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise GeminiRequestError(f"Unexpected Gemini response shape; raw={json.dumps(data)[:2000]}")

    items = extract_json_array(text)
    logger.info("gemini: %s checklist items for %r via %s", len(items), project_query[:80], model_name)
    return [i for i in items if isinstance(i, dict)]
