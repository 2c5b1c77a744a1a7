from __future__ import annotations

import os
from typing import Optional

import openai
import structlog
from openai import OpenAI

from .config import Settings, get_settings
from .errors import GenerationUnavailable

logger = structlog.get_logger(__name__)


class GenerationClient:
    """
    Synchronous boundary to the external text generation API.

    One prompt in, raw text out. No caching, no retries and no timeout of its
    own; callers impose a budget around `generate`.
    """

    def __init__(self, client: OpenAI, model: str):
        self.client = client
        self.model = model

    def generate(self, prompt: str) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as e:
            logger.warning("generation_failed", model=self.model, error=str(e), error_type=type(e).__name__)
            raise GenerationUnavailable(f"Generation request failed: {e}") from e

        if not completion.choices:
            raise GenerationUnavailable("Generation returned no choices")
        text = completion.choices[0].message.content
        if text is None:
            raise GenerationUnavailable("Generation returned an empty message")
        return text


def build_generation_client(settings: Optional[Settings] = None) -> GenerationClient:
    """
    Builds a client from settings.

    Uses OPENAI_API_KEY and optional OPENAI_BASE_URL. Retries are disabled on
    the underlying SDK client so each `generate` is a single attempt, and the
    SDK timeout matches the generation budget so an abandoned call ends with it.
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key or os.getenv("OPENAI_API_KEY")
    base_url = settings.openai_base_url or os.getenv("OPENAI_BASE_URL") or None
    if not api_key:
        raise GenerationUnavailable("OPENAI_API_KEY is not set")
    client = OpenAI(
        api_key=api_key,
        base_url=base_url,
        max_retries=0,
        timeout=settings.generation_timeout_seconds,
    )
    return GenerationClient(client, model=settings.chat_model)
