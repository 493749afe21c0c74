import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse

from .cache_service import SummaryCache
from .config import Settings
from .errors import LessonError
from .fact_writer import FactWriter
from .formatter import Formatter
from .llm_service import LLMService
from .pipeline import MISSING_TOPIC, LessonPipeline, RandomFact
from .query_expander import QueryExpander
from .relevance_filter import RelevanceFilter
from .summarizer import Summarizer
from .wikipedia_service import WikipediaService

settings = Settings.from_env()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

formatter = Formatter()

# Initialize components (will be created in lifespan)
pipeline: Optional[LessonPipeline] = None
random_fact: Optional[RandomFact] = None


def build_components(settings: Settings) -> tuple[LessonPipeline, RandomFact]:
    cache = SummaryCache(settings.cache_db, ttl_days=settings.cache_ttl_days) if settings.cache_db else None
    wiki = WikipediaService(
        user_agent=settings.user_agent,
        languages=settings.wikipedia_languages,
        summary_language=settings.summary_wiki,
        timeout=settings.http_timeout,
        retries=settings.http_retries,
        cache=cache,
    )
    llm = LLMService(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.http_timeout,
    )
    summarizer = Summarizer(wiki, llm, language=settings.lesson_language)
    expander = QueryExpander(
        llm,
        translations=settings.expansion_translations,
        keywords=settings.expansion_keywords,
        max_terms=settings.pipeline.max_terms,
    )
    lesson_pipeline = LessonPipeline(
        expander=expander,
        wiki=wiki,
        relevance=RelevanceFilter(llm),
        summarizer=summarizer,
        options=settings.pipeline,
        formatter=formatter,
        writer=FactWriter(llm, language=settings.lesson_language),
    )
    return lesson_pipeline, RandomFact(wiki, summarizer, translate=settings.pipeline.translate_output, formatter=formatter)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global pipeline, random_fact
    pipeline, random_fact = build_components(settings)
    logger.info(
        "Lesson pipeline ready (wikis=%s, model=%s, mode=%s, ai_only=%s)",
        settings.wikipedia_languages, settings.llm_model, settings.pipeline.term_mode, settings.pipeline.ai_only,
    )
    yield


app = FastAPI(title="Topic Lesson Agent", version="0.1.0", lifespan=lifespan)


def get_pipeline() -> LessonPipeline:
    if pipeline is None:
        raise RuntimeError("Lesson pipeline not initialized")
    return pipeline


def get_random_fact() -> RandomFact:
    if random_fact is None:
        raise RuntimeError("Random fact service not initialized")
    return random_fact


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=formatter.error(message))


@app.get("/")
def root():
    return {"message": "The lesson agent is running, ask for a fact with /fact?topic=<topic>"}


@app.get("/health")
async def health():
    return {"status": "healthy", "agent": "topic-lesson"}


@app.get("/fact")
async def fact(
    topic: Optional[str] = Query(None, description="What the lesson should be about"),
    lesson_pipeline: LessonPipeline = Depends(get_pipeline),
):
    """
    Resolve a topic into a short lesson built from a Wikipedia article.
    Example: /fact?topic=grawitacja
    """
    if topic is None or not topic.strip():
        return _error(400, MISSING_TOPIC)

    try:
        lesson = await lesson_pipeline.run(topic)
    except LessonError as e:
        return _error(e.http_status, e.message)
    except Exception:
        logger.exception("Unexpected error while preparing a lesson about %r", topic)
        return _error(500, "Could not prepare a lesson.")

    return lesson.model_dump(by_alias=True)


@app.get("/fact/random")
async def fact_random(service: RandomFact = Depends(get_random_fact)):
    try:
        lesson = await service.get()
    except LessonError as e:
        return _error(e.http_status, e.message)
    except Exception:
        logger.exception("Unexpected error while preparing a random fact")
        return _error(500, "Could not prepare a random fact.")

    return lesson.model_dump(by_alias=True)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
