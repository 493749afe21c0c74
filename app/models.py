# app/models.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ArticleCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: Optional[str] = None
    url: str
    # wiki edition the article was found on; None means the service default
    lang: Optional[str] = None


class Lesson(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lesson_title: str = Field(alias="lessonTitle")
    lesson_summary: str = Field(alias="lessonSummary")
    source: str
    date: str


class ErrorResponse(BaseModel):
    error: str
