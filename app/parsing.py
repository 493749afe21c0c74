# app/parsing.py
"""Decoders for free-text replies of the generative backend.

The model is an untrusted producer: every decoder returns ``Ok(value)`` or
``Err(reason)`` instead of raising, and callers decide what a failed decode
means for their stage.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")

NONE_TOKEN = "NONE"

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_NONE_REPLY = re.compile(r"^\W*none\W*$", re.IGNORECASE)
_TOKEN_SPLIT = re.compile(r"[,;\s]+")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str


Decoded = Union[Ok[T], Err]


def _strip_fences(text: str) -> str:
    m = _FENCE.search(text)
    if m:
        return m.group(1).strip()
    return text.strip()


def _clean_term(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    term = raw.strip().strip("\"'").strip()
    term = term.lstrip("-*• ").strip()
    return term or None


def _unique(terms: list[str]) -> list[str]:
    seen = set()
    out = []
    for term in terms:
        key = term.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(term)
    return out


def decode_expansion(text: Optional[str]) -> Decoded[list[str]]:
    """Decode a query-expansion reply into candidate terms.

    Accepts ``{"translations": [...], "keywords": [...]}`` (optionally fenced
    or surrounded by prose), a JSON array of strings, or a comma-separated
    list. Translations come before keywords, each in model order.
    """
    if text is None or not text.strip():
        return Err("empty reply")

    body = _strip_fences(text)

    start, end = body.find("{"), body.rfind("}")
    if start != -1:
        if end <= start:
            return Err("unterminated JSON object")
        try:
            data = json.loads(body[start:end + 1])
        except json.JSONDecodeError as exc:
            return Err(f"invalid JSON: {exc.msg}")
        if not isinstance(data, dict):
            return Err("expected a JSON object")
        if "translations" not in data and "keywords" not in data:
            return Err("JSON object has neither 'translations' nor 'keywords'")

        raw_terms = []
        for key in ("translations", "keywords"):
            values = data.get(key) or []
            if isinstance(values, str):
                values = [values]
            if not isinstance(values, list):
                return Err(f"'{key}' is not a list")
            raw_terms.extend(values)
    elif body.startswith("["):
        try:
            raw_terms = json.loads(body)
        except json.JSONDecodeError as exc:
            return Err(f"invalid JSON: {exc.msg}")
        if not isinstance(raw_terms, list):
            return Err("expected a JSON array")
    else:
        raw_terms = re.split(r"[,\n]+", body)

    terms = _unique([t for t in (_clean_term(r) for r in raw_terms) if t])
    if not terms:
        return Err("no terms in reply")
    return Ok(terms)


def decode_indices(text: Optional[str], count: int) -> Decoded[list[int]]:
    """Decode a relevance reply into sorted 0-based indices below ``count``.

    The prompt numbers candidates from 1. ``NONE`` decodes to an empty list.
    Tokens that are not integers or fall outside the candidate range are
    dropped.
    """
    if text is None or not text.strip():
        return Err("empty reply")

    body = _strip_fences(text)
    if _NONE_REPLY.match(body):
        return Ok([])

    picked = set()
    for token in _TOKEN_SPLIT.split(body):
        token = token.strip(".:[]()#")
        if not token:
            continue
        try:
            number = int(token)
        except ValueError:
            continue
        index = number - 1
        if 0 <= index < count:
            picked.add(index)

    return Ok(sorted(picked))


def decode_fact(text: Optional[str]) -> Decoded[dict]:
    """Decode a written-fact reply ``{"title", "fact", "source"}``.

    ``title`` and ``fact`` must be non-empty strings; a missing or non-string
    ``source`` decodes to "".
    """
    if text is None or not text.strip():
        return Err("empty reply")

    body = _strip_fences(text)
    start, end = body.find("{"), body.rfind("}")
    if start == -1 or end <= start:
        return Err("no JSON object in reply")
    try:
        data = json.loads(body[start:end + 1])
    except json.JSONDecodeError as exc:
        return Err(f"invalid JSON: {exc.msg}")
    if not isinstance(data, dict):
        return Err("expected a JSON object")

    fields = {}
    for key in ("title", "fact"):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            return Err(f"'{key}' is missing or empty")
        fields[key] = value.strip()

    source = data.get("source")
    fields["source"] = source.strip() if isinstance(source, str) else ""
    return Ok(fields)
