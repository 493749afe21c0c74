# app/formatter.py
from typing import Optional

from .models import ArticleCandidate, ErrorResponse, Lesson
from .util import utc_now_iso


class Formatter:
    def compose(self, article: ArticleCandidate, summary: str, date: Optional[str] = None) -> Lesson:
        """
        Build the lesson returned to the caller. The title is the article
        title and the source is the article's canonical URL.
        """
        return Lesson(
            lessonTitle=article.title,
            lessonSummary=summary,
            source=article.url,
            date=date or utc_now_iso(),
        )

    def compose_from_page(self, page: dict, summary: str, date: Optional[str] = None) -> Lesson:
        article = ArticleCandidate(title=page["title"], description=None, url=page["url"])
        return self.compose(article, summary, date)

    def error(self, message: str) -> dict:
        return ErrorResponse(error=message).model_dump()
