# app/relevance_filter.py
import logging
from typing import Sequence

from .errors import ModelOutputMalformed
from .llm_service import LLMService
from .models import ArticleCandidate
from .parsing import NONE_TOKEN, Err, Ok, decode_indices

logger = logging.getLogger(__name__)

FILTER_PROMPT = """The user wants to learn about: "{topic}"

Here are encyclopedia articles found for it:
{listing}

Which of these articles are actually about the user's topic?
Reply with the numbers of the relevant articles separated by commas (for example: 1, 3), \
or with the single word {none} if none of them is relevant. Do not add anything else."""


def _listing(candidates: Sequence[ArticleCandidate]) -> str:
    lines = []
    for number, article in enumerate(candidates, start=1):
        if article.description:
            lines.append(f"{number}. {article.title} - {article.description}")
        else:
            lines.append(f"{number}. {article.title}")
    return "\n".join(lines)


class RelevanceFilter:
    def __init__(self, llm: LLMService):
        self.llm = llm

    async def filter(self, topic: str, candidates: Sequence[ArticleCandidate]) -> list[ArticleCandidate]:
        """Return the candidates the model judged relevant, in their original order."""
        if not candidates:
            return []

        reply = await self.llm.complete(
            [
                {"role": "system", "content": "You judge search results. Answer only with numbers or NONE."},
                {
                    "role": "user",
                    "content": FILTER_PROMPT.format(topic=topic, listing=_listing(candidates), none=NONE_TOKEN),
                },
            ],
            temperature=0.0,
            max_tokens=100,
        )

        decoded = decode_indices(reply, len(candidates))
        if isinstance(decoded, Err):
            raise ModelOutputMalformed(f"Relevance check returned no answer ({decoded.reason})")
        elif isinstance(decoded, Ok):
            relevant = [candidates[i] for i in decoded.value]
            logger.info("%d of %d articles relevant to %r", len(relevant), len(candidates), topic)
            return relevant
