"""Token-per-minute rate limiting for LLM calls."""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, Tuple

import tiktoken

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
FALLBACK_ENCODING = "cl100k_base"


class TokenWindowRateLimiter:
    """
    Sliding one-minute window over reserved tokens.

    Each request reserves its estimated token count before calling the API;
    when the window is full the caller sleeps until the oldest reservation
    ages out. A single request larger than the limit is let through alone
    once the window is empty.
    """

    def __init__(self, tpm_limit: int, clock: Callable[[], float] = time.monotonic):
        self.tpm_limit = tpm_limit
        self.clock = clock
        self.reservations: Deque[Tuple[float, int]] = deque()
        self.lock = asyncio.Lock()

    @property
    def tokens_in_window(self) -> int:
        return sum(tokens for _, tokens in self.reservations)

    def _expire(self, now: float) -> None:
        while self.reservations and now - self.reservations[0][0] >= WINDOW_SECONDS:
            self.reservations.popleft()

    async def acquire(self, estimated_tokens: int) -> None:
        async with self.lock:
            while True:
                now = self.clock()
                self._expire(now)
                used = self.tokens_in_window
                if not self.reservations or used + estimated_tokens <= self.tpm_limit:
                    break
                wait = WINDOW_SECONDS - (now - self.reservations[0][0])
                logger.info(
                    f"Rate limit: {used}/{self.tpm_limit} tokens in window. "
                    f"Waiting {wait:.1f}s"
                )
                await asyncio.sleep(max(wait, 0.01))

            self.reservations.append((now, estimated_tokens))

    def report_actual_usage(self, actual_tokens: int, estimated_tokens: int) -> None:
        """Correct the most recent matching reservation with the billed count."""
        for index in range(len(self.reservations) - 1, -1, -1):
            stamp, tokens = self.reservations[index]
            if tokens == estimated_tokens:
                self.reservations[index] = (stamp, actual_tokens)
                break

        difference = actual_tokens - estimated_tokens
        if abs(difference) > 100:
            logger.debug(
                f"Token estimate off by {difference} "
                f"(estimated {estimated_tokens}, actual {actual_tokens})"
            )


def _encoding_for(model: str):
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding(FALLBACK_ENCODING)


def estimate_tokens(text: str, model: str = "gpt-4o-mini") -> int:
    return len(_encoding_for(model).encode(text))


def truncate_to_tokens(text: str, max_tokens: int, model: str = "gpt-4o-mini") -> str:
    """Cut text down to at most max_tokens tokens."""
    encoding = _encoding_for(model)
    tokens = encoding.encode(text)
    if len(tokens) <= max_tokens:
        return text
    return encoding.decode(tokens[:max_tokens])


def estimate_request_tokens(
    system_prompt: str,
    user_prompt: str,
    model: str = "gpt-4o-mini",
    response_buffer: int = 200,
) -> int:
    """Prompt tokens plus per-message overhead and room for the reply."""
    overhead = 8
    return (
        estimate_tokens(system_prompt, model)
        + estimate_tokens(user_prompt, model)
        + overhead
        + response_buffer
    )
