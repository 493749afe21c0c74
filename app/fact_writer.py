# app/fact_writer.py
import logging

from .errors import ModelOutputMalformed
from .llm_service import LLMService
from .parsing import Err, Ok, decode_fact

logger = logging.getLogger(__name__)

WRITE_PROMPT = """Write a short fun fact about the topic "{topic}" in {language}.
- At most 500 characters.
- Friendly, lightly scientific style.
- Give the source as a URL.
Reply with a single JSON object and nothing else:
{{"title": "Title of the fact", "fact": "The fact itself", "source": "https://..."}}"""


class FactWriter:
    """Lets the model write the whole lesson, with no encyclopedia lookup."""

    def __init__(self, llm: LLMService, language: str = "Polish"):
        self.llm = llm
        self.language = language

    async def write(self, topic: str) -> dict:
        reply = await self.llm.complete(
            [
                {"role": "system", "content": "You write educational fun facts and reply with strict JSON only."},
                {"role": "user", "content": WRITE_PROMPT.format(topic=topic, language=self.language)},
            ],
            temperature=0.7,
            max_tokens=400,
        )

        decoded = decode_fact(reply)
        if isinstance(decoded, Err):
            raise ModelOutputMalformed(f"Written fact could not be decoded ({decoded.reason})")
        elif isinstance(decoded, Ok):
            logger.info("Model wrote a fact about %r titled %r", topic, decoded.value["title"])
            return decoded.value
