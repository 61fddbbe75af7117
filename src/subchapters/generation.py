"""
Chapter generation with the OpenAI chat completions API.
"""

import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from .errors import CollaboratorUnavailable
from .prompts import CHAPTER_SYSTEM_PROMPT

logger = logging.getLogger("subchapters")

DEFAULT_MODEL = "gpt-4o-mini"

CHAPTERS_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "chapters",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "chapters": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "timestamp": {"type": "string"},
                            "title": {"type": "string"},
                        },
                        "required": ["timestamp", "title"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["chapters"],
            "additionalProperties": False,
        },
    },
}


class ChapterGenerator(Protocol):
    """Anything that turns a prompt into raw generated text."""

    async def generate(self, prompt: str) -> str: ...


class OpenAIChapterGenerator:
    """Generate chapter lists with an AsyncOpenAI client.

    The response format asks for the ``{"chapters": [...]}`` envelope, but the
    returned text is passed through untouched: decoding is the caller's job.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ):
        if client is None:
            raise RuntimeError("OpenAI client is not initialized (missing OPENAI_API_KEY)")
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, prompt: str) -> str:
        logger.info(f"Requesting chapters from {self.model} ({len(prompt)} prompt chars) …")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": CHAPTER_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format=CHAPTERS_RESPONSE_FORMAT,
            )
        except openai.APIError as e:
            logger.error(f"Chapter generation failed: {e}")
            raise CollaboratorUnavailable(
                f"Generation service error ({type(e).__name__}): {e}", stage="generate"
            ) from e

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()


def make_openai_generator(
    api_key: str, model: str = DEFAULT_MODEL, timeout: float = 120.0
) -> OpenAIChapterGenerator:
    """Create a generator backed by a fresh AsyncOpenAI client."""
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY is not set. Put it in .env or environment.")
    return OpenAIChapterGenerator(AsyncOpenAI(api_key=api_key, timeout=timeout), model=model)
