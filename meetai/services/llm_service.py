from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from meetai.settings import get_settings

logger = logging.getLogger(__name__)

ChatMessageParam = dict[str, str]

SUMMARY_SYSTEM_PROMPT = """You are an expert summarizer. You write readable, concise, simple content.
You are given a transcript of a meeting and you need to summarize it.

Use the following markdown structure for every output:

### Overview
Provide a detailed, engaging summary of the session's content. Focus on major features,
user workflows, and any key takeaways. Write in a narrative style, using full sentences.

### Notes
Break down key content into thematic sections with timestamp ranges. Each section should
summarize key points, actions, or demos in bullet format.
"""


class LLMError(Exception):
    pass


class LLMTransientError(LLMError):
    """Transient LLM errors (timeouts, 429/5xx, network) that should be retried."""


class LLMClient:
    def __init__(self, *, api_key: str, base_url: str, model: str, timeout: float = 60.0) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _post_chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise LLMError("OPENAI_API_KEY not configured")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
                resp.raise_for_status()
                return resp.json()
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise LLMTransientError(str(e)) from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            if code == 429 or 500 <= code <= 599:
                raise LLMTransientError(f"OpenAI HTTP {code}") from e
            raise LLMError(f"OpenAI HTTP {code}: {e.response.text[:500]}") from e

    def chat_completion(self, messages: list[ChatMessageParam]) -> str:
        """
        Returns the first choice's text, or "" when the provider answered without content.
        Callers decide what an empty completion means.
        """
        logger.info("Calling OpenAI chat completion. model=%s messages=%d", self.model, len(messages))
        start = time.time()
        body = self._post_chat_completion({"model": self.model, "messages": messages})
        elapsed = time.time() - start

        try:
            choice = body["choices"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning("OpenAI response had no choices. elapsed=%.2fs", elapsed)
            return ""
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        text = content.strip() if isinstance(content, str) else ""
        logger.info(
            "OpenAI response received. elapsed=%.2fs response_len=%d finish_reason=%s",
            elapsed,
            len(text),
            choice.get("finish_reason", "unknown") if isinstance(choice, dict) else "unknown",
        )
        return text

    def summarize_transcript(self, transcript_text: str) -> str:
        text = self.chat_completion(
            [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": f"Summarize the following transcript:\n\n{transcript_text}"},
            ]
        )
        if not text:
            raise LLMTransientError("Empty summary from LLM")
        return text


_llm: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _llm
    if _llm is None:
        settings = get_settings()
        _llm = LLMClient(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            model=settings.OPENAI_CHAT_MODEL,
        )
    return _llm
