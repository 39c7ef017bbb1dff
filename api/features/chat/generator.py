"""Reply generation via the OpenAI chat completions API.

Wraps the provider behind ``generate(history, new_message) -> str`` and
classifies every provider failure into one of the chat error kinds. The
client is built with retries disabled: retry policy belongs to the caller.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

import openai
import structlog
from openai import AsyncOpenAI

from api.features.chat.entities.message import Sender
from api.features.chat.exceptions import (
    AuthFailureError,
    GenerationFailedError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
    ReplyProviderError,
)
from api.features.chat.knowledge import KnowledgeBase
from api.features.chat.prompts import build_system_prompt

logger = structlog.get_logger("support.chat.generator")

ROLE_BY_SENDER = {Sender.USER: "user", Sender.AI: "assistant"}


def classify_provider_error(exc: Exception) -> ReplyProviderError:
    """Map an OpenAI SDK (or transport) exception onto a chat error kind."""
    if isinstance(exc, ReplyProviderError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return ProviderUnavailableError("Request timed out", timed_out=True)
    if isinstance(exc, openai.APITimeoutError):
        return ProviderUnavailableError("Request timed out", timed_out=True)
    if isinstance(exc, openai.APIConnectionError):
        return ProviderUnavailableError(f"Connection error: {exc}")
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthFailureError(
            "Invalid OpenAI API key. Please check your configuration.",
            status_code=exc.status_code,
        )
    if isinstance(exc, openai.RateLimitError):
        retry_after = None
        response = getattr(exc, "response", None)
        if response is not None:
            retry_after = response.headers.get("retry-after")
        return ProviderRateLimitedError(
            "Rate limit exceeded. Please try again in a moment.",
            status_code=exc.status_code,
            retry_after=retry_after,
        )
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500:
            return ProviderUnavailableError(
                "OpenAI service is temporarily unavailable.",
                status_code=exc.status_code,
            )
        return GenerationFailedError(
            f"OpenAI API error: {exc.message}", status_code=exc.status_code
        )
    return GenerationFailedError(f"Failed to generate response: {exc}")


class ReplyGenerator:
    """Turns an ordered history plus a new user message into a reply."""

    def __init__(
        self,
        *,
        api_key: str,
        knowledge: KnowledgeBase,
        model: str = "gpt-3.5-turbo",
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
        context_window: int = 10,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        if not api_key and client is None:
            raise AuthFailureError("OPENAI_API_KEY environment variable is not set")
        self.knowledge = knowledge
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.context_window = context_window
        self.system_prompt = build_system_prompt(knowledge)
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    def build_messages(self, history: Sequence[Any], new_message: str) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self.system_prompt}]
        for item in list(history)[-self.context_window :]:
            messages.append(
                {"role": ROLE_BY_SENDER[Sender(item.sender)], "content": item.text}
            )
        messages.append({"role": "user", "content": new_message})
        return messages

    async def generate(self, history: Sequence[Any], new_message: str) -> str:
        messages = self.build_messages(history, new_message)
        start = time.time()
        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    timeout=self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            error = classify_provider_error(exc)
            logger.warning(
                "reply_generation_failed",
                error_code=error.error_code,
                provider_status=error.status_code,
                latency_ms=int((time.time() - start) * 1000),
            )
            if error is exc:
                raise
            raise error from exc

        reply = None
        if completion.choices:
            reply = completion.choices[0].message.content
        if not reply or not reply.strip():
            logger.warning("reply_generation_empty", model=self.model)
            raise GenerationFailedError("No response generated from OpenAI")

        usage = getattr(completion, "usage", None)
        logger.info(
            "reply_generated",
            model=self.model,
            history_messages=len(messages) - 2,
            latency_ms=int((time.time() - start) * 1000),
            prompt_tokens=getattr(usage, "prompt_tokens", None),
            completion_tokens=getattr(usage, "completion_tokens", None),
        )
        return reply.strip()

    async def health_check(self) -> bool:
        """Check that the provider answers an authenticated request."""
        try:
            await asyncio.wait_for(self.client.models.list(), timeout=self.timeout_seconds)
            return True
        except (openai.OpenAIError, asyncio.TimeoutError) as exc:
            logger.warning("reply_provider_unhealthy", error=str(exc))
            return False
