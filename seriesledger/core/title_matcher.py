"""Series name matching over free-text release titles.

Release groups format names differently ("Breaking.Good", "Breaking Good",
"[Breaking_Good]"), so a title matches a subscription when the name or alias
is a substring of the title, compared case-folded first and then again with
separators, brackets and punctuation stripped from both sides.
"""

import re

_NORMALIZE_RE = re.compile(r"[\s._\-\[\](){}+:,'!?&]")


def normalize_title(text: str) -> str:
    """Case-fold and drop separators/brackets/punctuation."""
    return _NORMALIZE_RE.sub("", text.casefold())


def title_matches(title: str | None, name: str | None, alias: str | None = None) -> bool:
    """Return True if ``title`` mentions the series ``name`` or its ``alias``."""
    if not title:
        return False

    needles = [n.casefold().strip() for n in (name, alias) if n and n.strip()]
    if not needles:
        return False

    title_folded = title.casefold()
    if any(needle in title_folded for needle in needles):
        return True

    title_normalized = normalize_title(title)
    for needle in needles:
        normalized = normalize_title(needle)
        if normalized and normalized in title_normalized:
            return True
    return False


def build_smart_regex(name: str, season: int | None = None, quality: str | None = None) -> str:
    """Build the feed filter regex for a subscription.

    Example: name="From", season=2, quality="4K" -> ``From.*S0?2.*(2160p|4k|uhd)``
    """
    pattern = re.escape(name) + ".*"

    if season:
        pattern += f"S0?{int(season)}"

    if quality:
        pattern += ".*"
        q = quality.lower()
        if "4k" in q or "2160" in q:
            pattern += "(2160p|4k|uhd)"
        elif "1080" in q:
            pattern += "1080[pi]"
        elif "720" in q:
            pattern += "720[pi]"
        else:
            pattern += re.escape(quality)

    return pattern
