from __future__ import annotations

import logging
import os

import openai
from openai import AsyncOpenAI
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import (
    MissingCredentials,
    UpstreamAuthError,
    UpstreamPermissionDenied,
    UpstreamRateLimited,
    UpstreamTransportError,
)
from .logging_config import get_logger
from .prompt import PromptPayload

logger = get_logger("llm_client")


LLM_MODEL_DEFAULT = "gpt-4o-mini"
LLM_MAX_ATTEMPTS = int(os.getenv("LLM_MAX_ATTEMPTS", "2"))

# Worth another attempt; auth and bad-request errors are not.
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class FactCheckClient:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
    ):
        key = api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise MissingCredentials()
        timeout = timeout_seconds or float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
        # retries are handled by tenacity below
        self.client = AsyncOpenAI(api_key=key, timeout=timeout, max_retries=0)
        self.model = model or os.getenv("LLM_MODEL", LLM_MODEL_DEFAULT)

    @retry(
        reraise=True,
        stop=stop_after_attempt(LLM_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def _create(self, payload: PromptPayload) -> str:
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": payload.system},
                {"role": "user", "content": payload.content},
            ],
            temperature=0.2,
            max_tokens=1024,
            response_format={"type": "json_object"},
        )
        return resp.choices[0].message.content or ""

    async def complete(self, payload: PromptPayload) -> str:
        """
        Send one verification payload and return the model's raw text.

        Transient failures are retried with backoff; whatever is still failing
        afterwards is raised as one of the upstream errors.
        """
        logger.info(f"Calling {self.model} with {len(payload.content)} content part(s)")
        try:
            text = await self._create(payload)
        except openai.AuthenticationError as e:
            logger.error(f"Upstream rejected credentials: {e}")
            raise UpstreamAuthError() from e
        except openai.PermissionDeniedError as e:
            logger.error(f"Upstream denied access: {e}")
            raise UpstreamPermissionDenied() from e
        except openai.RateLimitError as e:
            logger.warning(f"Upstream rate limit: {e}")
            raise UpstreamRateLimited() from e
        except openai.OpenAIError as e:
            logger.error(f"Upstream call failed: {e.__class__.__name__}: {e}")
            raise UpstreamTransportError() from e

        logger.debug(f"Model replied with {len(text)} chars")
        return text
