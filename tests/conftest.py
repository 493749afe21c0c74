# tests/conftest.py
import random

import pytest

from app.config import PipelineOptions
from app.errors import UpstreamUnavailable
from app.fact_writer import FactWriter
from app.models import ArticleCandidate
from app.pipeline import LessonPipeline
from app.query_expander import QueryExpander
from app.relevance_filter import RelevanceFilter
from app.summarizer import Summarizer


class FakeLLM:
    """Replays canned replies in order; an Exception in the queue is raised."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def complete(self, messages, temperature=0.3, max_tokens=500):
        self.calls.append(messages)
        if not self.replies:
            raise AssertionError("unexpected call to the generative backend")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeWiki:
    def __init__(self, results=None, summaries=None, random_page=None):
        # term -> list of ArticleCandidate, or an Exception to raise
        self.results = results or {}
        self.summaries = summaries or {}
        self.random_page = random_page
        self.searched = []
        self.fetched = []
        self.fetched_langs = []

    async def search(self, term, limit=20):
        self.searched.append(term)
        found = self.results.get(term, [])
        if isinstance(found, Exception):
            raise found
        return list(found)[:limit]

    async def fetch_summary(self, title, lang=None):
        self.fetched.append(title)
        self.fetched_langs.append(lang)
        page = self.summaries.get(title)
        if isinstance(page, Exception):
            raise page
        return page

    async def fetch_random_summary(self, lang=None):
        if self.random_page is None:
            raise UpstreamUnavailable("Wikipedia random summary returned HTTP 503")
        return self.random_page


def article(title, description=None):
    return ArticleCandidate(
        title=title,
        description=description,
        url=f"https://en.wikipedia.org/wiki/{title.replace(' ', '_')}",
    )


def make_pipeline(llm, wiki, **options):
    options.setdefault("deadline", None)
    return LessonPipeline(
        expander=QueryExpander(llm, max_terms=options.get("max_terms", 8)),
        wiki=wiki,
        relevance=RelevanceFilter(llm),
        summarizer=Summarizer(wiki, llm, language="Polish"),
        options=PipelineOptions(**options),
        rng=random.Random(7),
        clock=lambda: "2024-05-01T12:00:00Z",
        writer=FactWriter(llm, language="Polish"),
    )


@pytest.fixture
def gravity_articles():
    return [
        article("Gravity of Earth", "Acceleration imparted to objects by Earth"),
        article("Gravity", "Attraction of masses and energy"),
        article("Gravity (2013 film)", "Film by Alfonso Cuarón"),
    ]
