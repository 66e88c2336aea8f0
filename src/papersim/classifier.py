"""Lexical market classifiers used to filter strategy universes."""

from __future__ import annotations

import re

SPORTS_KEYWORDS = (
    "nba",
    "nfl",
    "nhl",
    "mlb",
    "mls",
    "ncaa",
    "ufc",
    "wnba",
    "premier league",
    "champions league",
    "la liga",
    "serie a",
    "bundesliga",
    "ligue 1",
    "super bowl",
    "world series",
    "stanley cup",
    "grand slam",
    "wimbledon",
    "us open",
    "french open",
    "australian open",
    "grand prix",
    "formula 1",
    "f1 ",
    "nascar",
    "pga",
    "masters tournament",
    "world cup",
    "march madness",
    "playoffs",
    "touchdown",
    "home run",
    "esports",
    "counter-strike",
    "league of legends",
    "dota",
)

# Cues that, next to a "vs." pairing, mark a fixture rather than e.g. a court case.
SPORTS_CUES = (
    "game",
    "match",
    "score",
    "points",
    "goals",
    "spread",
    "o/u",
    "over/under",
    "handicap",
    "fc",
    "map",
    "bout",
    "fight",
)

_VS_RE = re.compile(r"\bvs\.?\s", re.IGNORECASE)
_WILL_RE = re.compile(r"\b(will|going to|expected to|set to|likely to|plan to|could|may)\b", re.IGNORECASE)


def is_sports_market(title: str) -> bool:
    """True for sports fixtures and other non-analytical markets."""
    text = f" {title.lower()} "
    if any(kw in text for kw in SPORTS_KEYWORDS):
        return True
    if _VS_RE.search(text):
        return any(re.search(rf"\b{re.escape(cue)}\b", text) for cue in SPORTS_CUES)
    return False


def is_will_question(title: str) -> bool:
    """True for "will X happen" style titles."""
    return bool(_WILL_RE.search(title))
