# tests/test_config_and_cache.py
from datetime import datetime, timedelta, timezone

import pytest

from app.cache_service import SummaryCache
from app.config import PipelineOptions, Settings


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("WIKIPEDIA_LANGUAGES", "en, pl")
    monkeypatch.setenv("FILTER_BY_RELEVANCE", "false")
    monkeypatch.setenv("TERM_MODE", "accumulate")
    monkeypatch.setenv("SEARCH_LIMIT", "500")
    monkeypatch.setenv("PIPELINE_DEADLINE", "0")
    monkeypatch.setenv("CACHE_DB", "")
    monkeypatch.setenv("AI_ONLY", "yes")

    settings = Settings.from_env()

    assert settings.wikipedia_languages == ["en", "pl"]
    assert settings.summary_wiki == "en"
    assert settings.pipeline.filter_by_relevance is False
    assert settings.pipeline.expand_query is True
    assert settings.pipeline.ai_only is True
    assert settings.pipeline.term_mode == "accumulate"
    assert settings.pipeline.search_limit == 50
    assert settings.pipeline.deadline is None
    assert settings.cache_db is None


def test_pipeline_options_validation():
    with pytest.raises(ValueError):
        PipelineOptions(term_mode="parallel")
    with pytest.raises(ValueError):
        PipelineOptions(max_terms=0)


def test_cache_roundtrip_and_expiry(tmp_path):
    cache = SummaryCache(str(tmp_path / "summaries.db"), ttl_days=1)
    key = SummaryCache.key("en", "Gravity")
    cache.set(key, {"title": "Gravity", "extract": "Grawitacja", "url": "u"})

    assert cache.get(SummaryCache.key("en", " Gravity ")) == {"title": "Gravity", "extract": "Grawitacja", "url": "u"}
    assert cache.get(SummaryCache.key("en", "gravity")) is None
    assert SummaryCache.key("en", "Speed of light") == SummaryCache.key("en", "Speed_of_light")
    assert cache.get(SummaryCache.key("pl", "Gravity")) is None

    cache.ttl = timedelta(seconds=-1)
    assert cache.get(key) is None


def test_cache_entries_written_now(tmp_path):
    import sqlite3

    cache = SummaryCache(str(tmp_path / "summaries.db"))
    cache.set("en:x", {"title": "X"})
    conn = sqlite3.connect(cache.db_path)
    (updated_at,) = conn.execute("SELECT updated_at FROM summaries").fetchone()
    conn.close()
    assert datetime.now(timezone.utc) - datetime.fromisoformat(updated_at) < timedelta(minutes=1)
