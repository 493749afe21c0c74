# app/summarizer.py
import logging

from .llm_service import LLMService
from .models import ArticleCandidate
from .wikipedia_service import WikipediaService

logger = logging.getLogger(__name__)

NO_SUMMARY = "No summary available."

PRESENT_PROMPT = """Translate the following encyclopedia summary into {language}.
Keep it factual, friendly and short enough to read as a fun fact. \
Reply with the translated text only.

{text}"""


class Summarizer:
    def __init__(self, wiki: WikipediaService, llm: LLMService, language: str = "Polish"):
        self.wiki = wiki
        self.llm = llm
        self.language = language

    async def resolve_summary(self, article: ArticleCandidate) -> str:
        """
        Use the search description when there is one; otherwise fetch the
        page summary by title. Falls back to a placeholder, never to "".
        """
        if article.description and article.description.strip():
            return article.description

        page = await self.wiki.fetch_summary(article.title, lang=article.lang)
        if page and page.get("extract"):
            return page["extract"]

        logger.info("No summary for %r, using placeholder", article.title)
        return NO_SUMMARY

    async def present(self, text: str) -> str:
        try:
            reply = await self.llm.complete(
                [
                    {"role": "system", "content": "You are a careful translator for an educational app."},
                    {"role": "user", "content": PRESENT_PROMPT.format(language=self.language, text=text)},
                ],
                temperature=0.3,
                max_tokens=600,
            )
        except Exception as e:
            logger.warning("Translation failed, keeping original text: %s", e)
            return text

        if not reply:
            logger.warning("Translation came back empty, keeping original text")
            return text
        return reply
