from openai import AsyncOpenAI
from typing import List, Optional
import asyncio
import json
import logging

from app.core.config import settings
from app.core.exceptions import ExternalCollaboratorError
from app.services.rate_limiter import (
    TokenWindowRateLimiter,
    estimate_request_tokens,
    truncate_to_tokens,
)

logger = logging.getLogger(__name__)

MAX_TAGS = 3
MAX_TITLE_LENGTH = 20

TAGS_SYSTEM_PROMPT = """You are a content classification assistant. Generate standardized tags for a piece of clipboard content, considering these dimensions:

1. Topic
2. Content type
3. Application domain
4. Named entities

Rules:
- Base every tag on features of the content itself
- Pick the single best tag per dimension
- Keep tags short (one or two words) and consistent across requests
- Never use the characters / \\ ? % * : | " < > in a tag

Respond with JSON only, no extra text. The key is "tags" and the value is an array of exactly 3 strings:
{"tags": ["tag1", "tag2", "tag3"]}"""

TITLE_SYSTEM_PROMPT = f"""You write short titles. Produce a concise, accurate title of at most {MAX_TITLE_LENGTH} characters for the user's text, in the same language as the text.

Respond with JSON only: {{"title": "..."}}"""

# Shared across tagger instances so parallel requests respect one budget
_shared_rate_limiter = None
_shared_semaphore = None


def _get_shared_rate_limiter():
    """Get or create the shared rate limiter instance."""
    global _shared_rate_limiter
    if _shared_rate_limiter is None:
        _shared_rate_limiter = TokenWindowRateLimiter(settings.LLM_TPM_LIMIT)
    return _shared_rate_limiter


def _get_shared_semaphore():
    """Get or create the shared semaphore instance."""
    global _shared_semaphore
    if _shared_semaphore is None:
        _shared_semaphore = asyncio.Semaphore(settings.LLM_MAX_CONCURRENT)
    return _shared_semaphore


def clean_tag_names(raw) -> List[str]:
    """Keep non-empty unique string tags, in order, at most MAX_TAGS."""
    if not isinstance(raw, list):
        return []
    names = []
    for value in raw:
        if not isinstance(value, str):
            continue
        name = value.strip()
        if name and name not in names:
            names.append(name)
    return names[:MAX_TAGS]


class LLMTagger:
    """Suggests tags and titles for clipboard content with an OpenAI-compatible model."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        if client is None:
            if not settings.llm_configured:
                raise ExternalCollaboratorError("No API key configured for the tagging model")
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.LLM_TIMEOUT,
            )
        self.client = client
        self.model = settings.LLM_MODEL
        self.rate_limiter = _get_shared_rate_limiter()
        self.semaphore = _get_shared_semaphore()

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> dict:
        user_prompt = truncate_to_tokens(
            user_prompt, settings.LLM_MAX_INPUT_TOKENS, self.model
        )
        estimated = estimate_request_tokens(system_prompt, user_prompt, self.model)

        async with self.semaphore:
            await self.rate_limiter.acquire(estimated)
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={"type": "json_object"},
                )
            except Exception as e:
                logger.error(f"LLM API error: {str(e)}")
                raise ExternalCollaboratorError(f"LLM request failed: {str(e)}")

        if response.usage is not None:
            self.rate_limiter.report_actual_usage(response.usage.total_tokens, estimated)

        try:
            return json.loads(response.choices[0].message.content or "")
        except (ValueError, IndexError) as e:
            logger.warning(f"Could not parse LLM response: {str(e)}")
            raise ExternalCollaboratorError("LLM returned malformed JSON")

    async def generate_tags(self, content: str) -> List[str]:
        result = await self._complete_json(TAGS_SYSTEM_PROMPT, content)
        tags = clean_tag_names(result.get("tags") if isinstance(result, dict) else None)
        logger.info(f"LLM suggested {len(tags)} tags")
        return tags

    async def generate_title(self, message: str) -> str:
        result = await self._complete_json(TITLE_SYSTEM_PROMPT, message)
        title = result.get("title") if isinstance(result, dict) else None
        if not isinstance(title, str) or not title.strip():
            raise ExternalCollaboratorError("LLM returned no title")
        return title.strip()[:MAX_TITLE_LENGTH]
