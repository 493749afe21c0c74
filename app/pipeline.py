# app/pipeline.py
"""Topic-to-lesson pipeline.

A request walks an explicit state machine::

    EXPANDING -> ITERATING_TERMS -> SEARCHING -> FILTERING -> SUMMARIZING -> DONE
                       ^               |             |
                       +---------------+-------------+   (empty / failed term)

and ends in DONE, EXHAUSTED or FAILED. With ``ai_only`` set the run starts in
WRITING instead and the model writes the whole lesson in one step. Each stage
handler performs one step and reports an ``Outcome``; ``next_state`` maps
(state, outcome) to the following state and holds no other logic.
"""
import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .config import PipelineOptions
from .errors import (
    DeadlineExceeded,
    ExhaustedError,
    InputError,
    LessonError,
    ModelOutputMalformed,
    UpstreamUnavailable,
)
from .fact_writer import FactWriter
from .formatter import Formatter
from .models import ArticleCandidate, Lesson
from .query_expander import QueryExpander
from .relevance_filter import RelevanceFilter
from .summarizer import NO_SUMMARY, Summarizer
from .util import utc_now_iso
from .wikipedia_service import WikipediaService

logger = logging.getLogger(__name__)

MISSING_TOPIC = "Missing 'topic' query parameter."


class PipelineState(str, Enum):
    EXPANDING = "expanding"
    ITERATING_TERMS = "iterating_terms"
    SEARCHING = "searching"
    FILTERING = "filtering"
    SUMMARIZING = "summarizing"
    WRITING = "writing"
    DONE = "done"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


TERMINAL_STATES = {PipelineState.DONE, PipelineState.EXHAUSTED, PipelineState.FAILED}


class Outcome(str, Enum):
    PRODUCED = "produced"
    EMPTY = "empty"
    # only reported by ITERATING_TERMS in accumulate mode: no terms left, articles collected
    COLLECTED = "collected"
    TERM_FAILED = "term_failed"
    FATAL = "fatal"


S, O = PipelineState, Outcome

_SHORT_CIRCUIT = {
    (S.EXPANDING, O.PRODUCED): S.ITERATING_TERMS,
    (S.EXPANDING, O.FATAL): S.FAILED,
    (S.ITERATING_TERMS, O.PRODUCED): S.SEARCHING,
    (S.ITERATING_TERMS, O.EMPTY): S.EXHAUSTED,
    (S.SEARCHING, O.PRODUCED): S.FILTERING,
    (S.SEARCHING, O.EMPTY): S.ITERATING_TERMS,
    (S.SEARCHING, O.TERM_FAILED): S.ITERATING_TERMS,
    (S.FILTERING, O.PRODUCED): S.SUMMARIZING,
    (S.FILTERING, O.EMPTY): S.ITERATING_TERMS,
    (S.FILTERING, O.TERM_FAILED): S.ITERATING_TERMS,
    (S.FILTERING, O.FATAL): S.FAILED,
    (S.SUMMARIZING, O.PRODUCED): S.DONE,
    (S.SUMMARIZING, O.FATAL): S.FAILED,
    (S.WRITING, O.PRODUCED): S.DONE,
    (S.WRITING, O.FATAL): S.FAILED,
}

_ACCUMULATE = {
    (S.EXPANDING, O.PRODUCED): S.ITERATING_TERMS,
    (S.EXPANDING, O.FATAL): S.FAILED,
    (S.ITERATING_TERMS, O.PRODUCED): S.SEARCHING,
    (S.ITERATING_TERMS, O.COLLECTED): S.FILTERING,
    (S.ITERATING_TERMS, O.EMPTY): S.EXHAUSTED,
    (S.SEARCHING, O.PRODUCED): S.ITERATING_TERMS,
    (S.SEARCHING, O.EMPTY): S.ITERATING_TERMS,
    (S.SEARCHING, O.TERM_FAILED): S.ITERATING_TERMS,
    (S.FILTERING, O.PRODUCED): S.SUMMARIZING,
    (S.FILTERING, O.EMPTY): S.EXHAUSTED,
    (S.FILTERING, O.TERM_FAILED): S.FAILED,
    (S.FILTERING, O.FATAL): S.FAILED,
    (S.SUMMARIZING, O.PRODUCED): S.DONE,
    (S.SUMMARIZING, O.FATAL): S.FAILED,
    (S.WRITING, O.PRODUCED): S.DONE,
    (S.WRITING, O.FATAL): S.FAILED,
}

TRANSITIONS = {"short_circuit": _SHORT_CIRCUIT, "accumulate": _ACCUMULATE}


def next_state(state: PipelineState, outcome: Outcome, mode: str = "short_circuit") -> PipelineState:
    try:
        return TRANSITIONS[mode][(state, outcome)]
    except KeyError:
        raise ValueError(f"No transition from {state.value} on {outcome.value} in {mode} mode") from None


@dataclass
class _Run:
    """Everything one request owns while it walks the state machine."""

    topic: str
    pending: deque = field(default_factory=deque)
    tried: list[str] = field(default_factory=list)
    term: Optional[str] = None
    candidates: list[ArticleCandidate] = field(default_factory=list)
    collected: dict[str, ArticleCandidate] = field(default_factory=dict)
    relevant: list[ArticleCandidate] = field(default_factory=list)
    error: Optional[LessonError] = None
    lesson: Optional[Lesson] = None


class LessonPipeline:
    def __init__(
        self,
        expander: QueryExpander,
        wiki: WikipediaService,
        relevance: RelevanceFilter,
        summarizer: Summarizer,
        options: Optional[PipelineOptions] = None,
        formatter: Optional[Formatter] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], str] = utc_now_iso,
        writer: Optional[FactWriter] = None,
    ):
        self.expander = expander
        self.wiki = wiki
        self.relevance = relevance
        self.summarizer = summarizer
        self.options = options or PipelineOptions()
        self.formatter = formatter or Formatter()
        self.rng = rng or random.Random()
        self.clock = clock
        self.writer = writer
        self._handlers = {
            S.EXPANDING: self._expand,
            S.ITERATING_TERMS: self._next_term,
            S.SEARCHING: self._search,
            S.FILTERING: self._filter,
            S.SUMMARIZING: self._summarize,
            S.WRITING: self._write,
        }

    async def run(self, topic: Optional[str]) -> Lesson:
        """
        Resolve a topic into one lesson or raise a LessonError.
        The whole run is bounded by ``options.deadline`` seconds.
        """
        if topic is None or not topic.strip():
            raise InputError(MISSING_TOPIC)
        topic = topic.strip()

        if not self.options.deadline:
            return await self._walk(topic)

        try:
            return await asyncio.wait_for(self._walk(topic), timeout=self.options.deadline)
        except asyncio.TimeoutError:
            logger.error("Lesson for %r not ready within %ss", topic, self.options.deadline)
            raise DeadlineExceeded(
                f"Could not prepare a lesson about '{topic}' within {self.options.deadline:g} seconds."
            ) from None

    async def _walk(self, topic: str) -> Lesson:
        run = _Run(topic=topic)
        state = S.WRITING if self.options.ai_only else S.EXPANDING

        while state not in TERMINAL_STATES:
            outcome = await self._handlers[state](run)
            new_state = next_state(state, outcome, self.options.term_mode)
            logger.debug("%s --%s--> %s (term=%r)", state.value, outcome.value, new_state.value, run.term)
            state = new_state

        if state is S.DONE:
            return run.lesson
        if state is S.EXHAUSTED:
            logger.warning("No relevant article for %r, tried %s", topic, run.tried)
            raise ExhaustedError(
                f"No matching article found for '{topic}' under any candidate term "
                f"({', '.join(run.tried) or 'none'})."
            )
        logger.error("Lesson pipeline failed for %r: %s", topic, run.error)
        raise run.error

    async def _expand(self, run: _Run) -> Outcome:
        if not self.options.expand_query:
            terms = [run.topic]
        else:
            try:
                terms = await self.expander.expand(run.topic)
            except LessonError as e:
                run.error = e
                return O.FATAL

        seen = set()
        for term in terms or [run.topic]:
            if term.casefold() in seen:
                continue
            seen.add(term.casefold())
            run.pending.append(term)
            if len(run.pending) >= self.options.max_terms:
                break
        return O.PRODUCED

    async def _next_term(self, run: _Run) -> Outcome:
        if run.pending:
            run.term = run.pending.popleft()
            run.tried.append(run.term)
            run.candidates = []
            return O.PRODUCED

        run.term = None
        if run.collected:
            run.candidates = list(run.collected.values())
            return O.COLLECTED
        return O.EMPTY

    async def _search(self, run: _Run) -> Outcome:
        try:
            found = await self.wiki.search(run.term, limit=self.options.search_limit)
        except UpstreamUnavailable as e:
            logger.warning("Search for %r failed, trying next term: %s", run.term, e)
            return O.TERM_FAILED

        if not found:
            logger.info("No articles for %r", run.term)
            return O.EMPTY

        if self.options.term_mode == "accumulate":
            for article in found:
                if len(run.collected) >= self.options.search_limit:
                    logger.info("Collected %d articles, ignoring the rest", len(run.collected))
                    break
                run.collected.setdefault(article.title.casefold(), article)
        else:
            run.candidates = found
        return O.PRODUCED

    async def _filter(self, run: _Run) -> Outcome:
        if not self.options.filter_by_relevance:
            run.relevant = list(run.candidates)
            return O.PRODUCED if run.relevant else O.EMPTY

        try:
            run.relevant = await self.relevance.filter(run.topic, run.candidates)
        except ModelOutputMalformed as e:
            run.error = e
            return O.FATAL
        except UpstreamUnavailable as e:
            logger.warning("Relevance check for %r failed: %s", run.term, e)
            run.error = e
            return O.TERM_FAILED

        return O.PRODUCED if run.relevant else O.EMPTY

    async def _summarize(self, run: _Run) -> Outcome:
        article = self.rng.choice(run.relevant)
        logger.info("Building lesson for %r from %r", run.topic, article.title)

        try:
            summary = await self.summarizer.resolve_summary(article)
        except LessonError as e:
            run.error = e
            return O.FATAL

        if self.options.translate_output:
            summary = await self.summarizer.present(summary)

        run.lesson = self.formatter.compose(article, summary, date=self.clock())
        return O.PRODUCED

    async def _write(self, run: _Run) -> Outcome:
        if self.writer is None:
            run.error = LessonError("No fact writer configured.")
            return O.FATAL

        try:
            fact = await self.writer.write(run.topic)
        except LessonError as e:
            run.error = e
            return O.FATAL

        page = {"title": fact["title"], "url": fact["source"]}
        run.lesson = self.formatter.compose_from_page(page, fact["fact"], date=self.clock())
        return O.PRODUCED


class RandomFact:
    """A lesson from a random encyclopedia page, no topic involved."""

    def __init__(self, wiki: WikipediaService, summarizer: Summarizer, translate: bool = True,
                 formatter: Optional[Formatter] = None):
        self.wiki = wiki
        self.summarizer = summarizer
        self.translate = translate
        self.formatter = formatter or Formatter()

    async def get(self) -> Lesson:
        page = await self.wiki.fetch_random_summary()
        summary = page.get("extract") or NO_SUMMARY
        if self.translate:
            summary = await self.summarizer.present(summary)
        return self.formatter.compose_from_page(page, summary)
