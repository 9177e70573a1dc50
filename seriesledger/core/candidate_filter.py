"""Keyword, size and regex filtering of feed candidates."""

import logging
import re

from pydantic import BaseModel

from seriesledger.models.schemas import CandidateItem

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class CandidateFilter(BaseModel):
    """Feed task filter. Keywords are comma separated; sizes are in MB, 0 = unbounded."""

    keywords: str = ""
    exclude: str = ""
    size_min: float = 0
    size_max: float = 0
    smart_regex: str | None = None


def _split(keywords: str) -> list[str]:
    return [k.strip() for k in keywords.lower().split(",") if k.strip()]


def item_matches(item: CandidateItem, config: CandidateFilter) -> bool:
    """True if the candidate passes every configured rule.

    All include keywords must appear, any exclude keyword rejects, size bounds
    apply only when the feed reported a size.
    """
    title = item.title.lower()

    include = _split(config.keywords)
    if include and not all(k in title for k in include):
        return False

    exclude = _split(config.exclude)
    if exclude and any(k in title for k in exclude):
        return False

    if item.size > 0:
        size_mb = item.size / MB
        if config.size_min and size_mb < config.size_min:
            return False
        if config.size_max and size_mb > config.size_max:
            return False

    if config.smart_regex:
        try:
            if not re.search(config.smart_regex, item.title, re.IGNORECASE):
                return False
        except re.error as e:
            logger.warning(f"Ignoring invalid filter regex {config.smart_regex!r}: {e}")

    return True
