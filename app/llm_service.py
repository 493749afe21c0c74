# app/llm_service.py
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from .errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class LLMService:
    """Thin wrapper over an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.timeout = timeout
        # retries are left to the pipeline, which treats a failed call as a failed stage
        self.client = client or AsyncOpenAI(
            api_key=api_key or "missing-key",
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def complete(
        self,
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> Optional[str]:
        """
        Send role-tagged messages and return the reply text.
        Returns None when the backend answered without content.
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=self.timeout,
            )
        except openai.APITimeoutError as e:
            logger.warning("Generative backend timed out after %ss", self.timeout)
            raise UpstreamUnavailable("Generative backend timed out") from e
        except openai.APIError as e:
            logger.warning("Generative backend error: %s", e)
            raise UpstreamUnavailable(f"Generative backend error: {e}") from e

        if not response.choices:
            return None

        content = response.choices[0].message.content
        if content is None:
            return None

        content = content.strip()
        return content or None
