# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from app.main import app, get_pipeline, get_random_fact
from app.pipeline import RandomFact
from app.summarizer import Summarizer

from conftest import FakeLLM, FakeWiki, make_pipeline

client = TestClient(app)

EXPANSION = '{"translations": ["gravity", "gravitation"], "keywords": ["spacetime curvature"]}'


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def use_pipeline(llm, wiki, **options):
    app.dependency_overrides[get_pipeline] = lambda: make_pipeline(llm, wiki, **options)


def test_health():
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json().get("status") == "healthy"


def test_fact_returns_lesson(gravity_articles):
    llm = FakeLLM([EXPANSION, "2", "Grawitacja to wzajemne przyciąganie się mas."])
    wiki = FakeWiki(results={"gravity": gravity_articles})
    use_pipeline(llm, wiki)

    res = client.get("/fact", params={"topic": "grawitacja"})
    assert res.status_code == 200

    body = res.json()
    assert body == {
        "lessonTitle": "Gravity",
        "lessonSummary": "Grawitacja to wzajemne przyciąganie się mas.",
        "source": "https://en.wikipedia.org/wiki/Gravity",
        "date": "2024-05-01T12:00:00Z",
    }


@pytest.mark.parametrize("query", ["", "?topic=", "?topic=%20%20"])
def test_fact_without_topic(query):
    llm, wiki = FakeLLM(), FakeWiki()
    use_pipeline(llm, wiki)

    res = client.get("/fact" + query)
    assert res.status_code == 400
    assert res.json()["error"]
    assert llm.calls == [] and wiki.searched == []


def test_fact_exhausted():
    llm, wiki = FakeLLM([EXPANSION]), FakeWiki()
    use_pipeline(llm, wiki)

    res = client.get("/fact", params={"topic": "grawitacja"})
    assert res.status_code == 500

    missing = client.get("/fact").json()["error"]
    assert res.json()["error"]
    assert res.json()["error"] != missing


def test_fact_unexpected_error_is_500():
    class BrokenPipeline:
        async def run(self, topic):
            raise RuntimeError("boom")

    app.dependency_overrides[get_pipeline] = lambda: BrokenPipeline()

    res = client.get("/fact", params={"topic": "grawitacja"})
    assert res.status_code == 500
    assert res.json() == {"error": "Could not prepare a lesson."}


def test_random_fact():
    wiki = FakeWiki(random_page={
        "title": "Ada Lovelace",
        "extract": "English mathematician.",
        "url": "https://en.wikipedia.org/wiki/Ada_Lovelace",
    })
    llm = FakeLLM(["Angielska matematyczka."])
    app.dependency_overrides[get_random_fact] = lambda: RandomFact(wiki, Summarizer(wiki, llm))

    res = client.get("/fact/random")
    assert res.status_code == 200
    body = res.json()
    assert body["lessonTitle"] == "Ada Lovelace"
    assert body["lessonSummary"] == "Angielska matematyczka."
    assert body["source"] == "https://en.wikipedia.org/wiki/Ada_Lovelace"
    assert body["date"]


def test_random_fact_outage():
    wiki = FakeWiki()
    app.dependency_overrides[get_random_fact] = lambda: RandomFact(wiki, Summarizer(wiki, FakeLLM()))

    res = client.get("/fact/random")
    assert res.status_code == 500
    assert "503" in res.json()["error"]


def test_ai_only_fact():
    llm = FakeLLM(['{"title": "Jabłko Newtona", "fact": "Grawitacja przyciąga jabłka.", "source": "https://pl.wikipedia.org/wiki/Grawitacja"}'])
    wiki = FakeWiki()
    use_pipeline(llm, wiki, ai_only=True)

    res = client.get("/fact", params={"topic": "grawitacja"})
    assert res.status_code == 200
    assert res.json()["lessonTitle"] == "Jabłko Newtona"
    assert wiki.searched == []


def test_ai_only_unparseable_reply_is_500():
    llm, wiki = FakeLLM(["Nie wiem."]), FakeWiki()
    use_pipeline(llm, wiki, ai_only=True)

    res = client.get("/fact", params={"topic": "grawitacja"})
    assert res.status_code == 500
    assert res.json()["error"]
