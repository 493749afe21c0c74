# app/config.py
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

TERM_MODES = ("short_circuit", "accumulate")


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass
class PipelineOptions:
    """Switches and caps for the optional stages of the lesson pipeline."""

    expand_query: bool = True
    filter_by_relevance: bool = True
    translate_output: bool = True
    # the model writes the lesson itself, no encyclopedia lookup
    ai_only: bool = False
    term_mode: str = "short_circuit"
    max_terms: int = 8
    search_limit: int = 20
    deadline: Optional[float] = 60.0

    def __post_init__(self):
        if self.term_mode not in TERM_MODES:
            raise ValueError(f"term_mode must be one of {TERM_MODES}, got {self.term_mode!r}")
        if self.max_terms < 1:
            raise ValueError("max_terms must be at least 1")
        # the search index accepts between 1 and 50 results per call
        self.search_limit = max(1, min(self.search_limit, 50))


@dataclass
class Settings:
    port: int = 5002
    log_level: str = "INFO"
    user_agent: str = "TopicLessonAgent/1.0"
    wikipedia_languages: list[str] = field(default_factory=lambda: ["en"])
    summary_language: Optional[str] = None
    http_timeout: float = 10.0
    http_retries: int = 3
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    lesson_language: str = "Polish"
    expansion_translations: int = 3
    expansion_keywords: int = 3
    cache_db: Optional[str] = "./data/summary_cache.db"
    cache_ttl_days: int = 14
    pipeline: PipelineOptions = field(default_factory=PipelineOptions)

    @property
    def summary_wiki(self) -> str:
        return self.summary_language or self.wikipedia_languages[0]

    @classmethod
    def from_env(cls) -> "Settings":
        languages = [
            lang.strip()
            for lang in os.getenv("WIKIPEDIA_LANGUAGES", "en").split(",")
            if lang.strip()
        ] or ["en"]

        deadline = _float("PIPELINE_DEADLINE", 60.0)

        return cls(
            port=_int("PORT", 5002),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            user_agent=os.getenv("USER_AGENT", "TopicLessonAgent/1.0"),
            wikipedia_languages=languages,
            summary_language=os.getenv("SUMMARY_LANGUAGE") or None,
            http_timeout=_float("HTTP_TIMEOUT", 10.0),
            http_retries=_int("HTTP_RETRIES", 3),
            llm_api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
            llm_base_url=os.getenv("LLM_BASE_URL") or None,
            llm_model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            lesson_language=os.getenv("LESSON_LANGUAGE", "Polish"),
            expansion_translations=_int("EXPANSION_TRANSLATIONS", 3),
            expansion_keywords=_int("EXPANSION_KEYWORDS", 3),
            cache_db=os.getenv("CACHE_DB", "./data/summary_cache.db") or None,
            cache_ttl_days=_int("CACHE_TTL_DAYS", 14),
            pipeline=PipelineOptions(
                expand_query=_flag("EXPAND_QUERY", True),
                filter_by_relevance=_flag("FILTER_BY_RELEVANCE", True),
                translate_output=_flag("TRANSLATE_OUTPUT", True),
                ai_only=_flag("AI_ONLY", False),
                term_mode=os.getenv("TERM_MODE", "short_circuit").strip().lower(),
                max_terms=_int("MAX_CANDIDATE_TERMS", 8),
                search_limit=_int("SEARCH_LIMIT", 20),
                deadline=deadline if deadline > 0 else None,
            ),
        )
