# app/util.py
import urllib.parse
from datetime import datetime, timezone


def wiki_page_url(lang: str, key: str) -> str:
    """Canonical desktop URL of a page given its key (title with underscores)."""
    encoded = urllib.parse.quote(key.replace(" ", "_"), safe="()_,'!-.:")
    return f"https://{lang}.wikipedia.org/wiki/{encoded}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
