"""Contributor identity normalization.

Survey respondents type their display name ("Ana Lopez"), while the
project board and the contribution-history API key everything by
platform username ("ana-lopez"). ``normalize_contributor_name`` is the
single normalization rule shared by every component. ``UsernameResolver``
layers fuzzy matching against a known username set on top of it for
callers that have one.
"""

import logging
import re
from collections.abc import Iterable

from rapidfuzz import fuzz, process

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_contributor_name(name: str | None) -> str:
    """Map a display name to its canonical username form.

    Trims, lower-cases, and joins whitespace-separated parts with "-".
    Empty or missing input returns "".
    """
    if not name:
        return ""
    return _WHITESPACE.sub("-", name.strip().lower())


class UsernameResolver:
    """Resolves display names against a set of known platform usernames.

    Resolution tiers:
        1. Exact match of the normalized name against a known username
        2. Fuzzy match (rapidfuzz WRatio) at or above ``score_cutoff``
        3. The normalized name itself

    Args:
        known_usernames: Usernames seen on the board or profile API.
        score_cutoff:    Minimum WRatio score (0-100) for tier 2.
    """

    def __init__(self, known_usernames: Iterable[str], score_cutoff: float = 85):
        self.score_cutoff = score_cutoff
        self._known: dict[str, str] = {}
        for username in known_usernames:
            if username:
                self._known[normalize_contributor_name(username)] = username

    @classmethod
    def from_config(cls, known_usernames: Iterable[str], config: dict) -> "UsernameResolver":
        cutoff = config.get("identity", {}).get("fuzzy_score_cutoff", 85)
        return cls(known_usernames, score_cutoff=cutoff)

    def resolve(self, name: str | None) -> str:
        normalized = normalize_contributor_name(name)
        if not normalized:
            return ""

        # Tier 1: exact
        if normalized in self._known:
            return self._known[normalized]

        # Tier 2: fuzzy
        if self._known:
            match = process.extractOne(
                normalized,
                list(self._known.keys()),
                scorer=fuzz.WRatio,
                score_cutoff=self.score_cutoff,
            )
            if match is not None:
                candidate, score, _ = match
                logger.debug(
                    "Resolved '%s' -> '%s' (fuzzy %.0f%%)",
                    name, self._known[candidate], score,
                )
                return self._known[candidate]

        # Tier 3: fall back to the normalized form
        logger.debug("No known username for '%s', using '%s'", name, normalized)
        return normalized

    __call__ = resolve
