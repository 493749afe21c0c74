# app/query_expander.py
import logging

from .llm_service import LLMService
from .parsing import Err, Ok, decode_expansion

logger = logging.getLogger(__name__)

EXPANSION_PROMPT = """You help search an English-language encyclopedia.
The user typed a topic, possibly in another language: "{topic}"

Return exactly {translations} English translations or synonyms of the topic and \
{keywords} short English keywords closely related to it, most relevant first.
Reply with a single JSON object and nothing else:
{{"translations": ["..."], "keywords": ["..."]}}"""


class QueryExpander:
    def __init__(self, llm: LLMService, translations: int = 3, keywords: int = 3, max_terms: int = 8):
        self.llm = llm
        self.translations = translations
        self.keywords = keywords
        self.max_terms = max_terms

    async def expand(self, topic: str) -> list[str]:
        """
        Turn a topic into candidate search terms: translations first, then
        keywords, in the order the model gave them. A reply that cannot be
        decoded degrades to ``[topic]``.
        """
        prompt = EXPANSION_PROMPT.format(
            topic=topic, translations=self.translations, keywords=self.keywords
        )
        reply = await self.llm.complete(
            [
                {"role": "system", "content": "You reply with strict JSON only."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.2,
            max_tokens=200,
        )

        decoded = decode_expansion(reply)
        if isinstance(decoded, Err):
            logger.warning("Query expansion for %r not usable (%s), searching the topic itself", topic, decoded.reason)
            return [topic]
        elif isinstance(decoded, Ok):
            terms = decoded.value[: self.max_terms]
            logger.info("Expanded %r into %s", topic, terms)
            return terms
