"""
Completeness scoring, source priority and content validation

Pure functions over immutable strings. The completeness weight table and
the priority tier table are data, so they can be retuned without touching
the scoring code.

Completeness score (0-100) combines four signals:
- Raw length (0-30)
- Non-blank line count (0-20)
- Structural markers: first verse, second verse, chorus, bridge (0-30)
- Paragraphs of more than 20 characters separated by a blank line (0-20)

The score is a proxy for "complete song transcript, not a snippet". It says
nothing about whether the words are the right ones.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Candidate


@dataclass(frozen=True)
class MarkerGroup:
    """A structural marker and the keywords that reveal it"""
    name: str
    keywords: Tuple[str, ...]
    points: int


@dataclass(frozen=True)
class ScoringTable:
    """
    Weight table for the completeness score

    Tier tuples are (exclusive lower bound, points), checked in order.
    """
    length_tiers: Tuple[Tuple[int, int], ...]
    length_floor: int
    line_tiers: Tuple[Tuple[int, int], ...]
    markers: Tuple[MarkerGroup, ...]
    paragraph_tiers: Tuple[Tuple[int, int], ...]
    paragraph_min_chars: int


DEFAULT_SCORING_TABLE = ScoringTable(
    length_tiers=((1500, 30), (1000, 25), (700, 20), (500, 15), (300, 10)),
    length_floor=5,
    line_tiers=((40, 20), (30, 15), (20, 10), (10, 5)),
    markers=(
        MarkerGroup('verse1', ('Verse 1', '[Verse 1]', '1절'), 10),
        MarkerGroup('verse2', ('Verse 2', '[Verse 2]', '2절'), 10),
        MarkerGroup('chorus', ('Chorus', '[Chorus]', '후렴'), 7),
        MarkerGroup('bridge', ('Bridge', '[Bridge]', '브릿지'), 3),
    ),
    paragraph_tiers=((5, 20), (4, 15), (3, 10), (2, 5)),
    paragraph_min_chars=20,
)


def _tier_points(value: int, tiers: Iterable[Tuple[int, int]], floor: int = 0) -> int:
    for threshold, points in tiers:
        if value > threshold:
            return points
    return floor


def count_paragraphs(text: str, min_chars: int = 20) -> int:
    return len([p for p in text.split('\n\n') if len(p.strip()) > min_chars])


def find_markers(text: str, table: ScoringTable = DEFAULT_SCORING_TABLE) -> List[str]:
    """Names of the structural markers present in the text"""
    return [group.name for group in table.markers if any(k in text for k in group.keywords)]


def score_completeness(text: str, table: ScoringTable = DEFAULT_SCORING_TABLE) -> int:
    """
    Score how structurally complete a transcript looks

    Deterministic and side-effect free.

    Args:
        text: Transcript to score
        table: Weight table, DEFAULT_SCORING_TABLE unless retuning

    Returns:
        Integer score in [0, 100]; 0 for empty text
    """
    if not text:
        return 0

    score = _tier_points(len(text), table.length_tiers, table.length_floor)

    lines = [line for line in text.split('\n') if line.strip()]
    score += _tier_points(len(lines), table.line_tiers)

    for group in table.markers:
        if any(keyword in text for keyword in group.keywords):
            score += group.points

    score += _tier_points(count_paragraphs(text, table.paragraph_min_chars), table.paragraph_tiers)

    return min(100, score)


@dataclass(frozen=True)
class PriorityTier:
    """
    One row of the source priority table

    A candidate matches when `match` is a substring of its source id and,
    for tiers that require it, the candidate carries timestamps.
    """
    match: str
    score: int
    requires_timestamps: bool = False

    def applies_to(self, candidate: Candidate) -> bool:
        if self.match not in candidate.source:
            return False
        return candidate.has_timestamps or not self.requires_timestamps


DEFAULT_PRIORITY_TIERS: Tuple[PriorityTier, ...] = (
    PriorityTier('genius', 100),
    PriorityTier('melon', 95),
    PriorityTier('lrclib', 90, requires_timestamps=True),
    PriorityTier('syncedlyrics', 85, requires_timestamps=True),
    PriorityTier('bugs', 70),
)

DEFAULT_PRIORITY = 50


def tiers_from_config(entries: Sequence[Dict[str, Any]]) -> Tuple[PriorityTier, ...]:
    """
    Build a tier table from configuration entries

    Args:
        entries: Dicts with 'match', 'score' and optional 'requires_timestamps'

    Raises:
        ConfigError: If an entry lacks 'match' or 'score'
    """
    from ..utils.exceptions import ConfigError

    tiers = []
    for entry in entries:
        try:
            tiers.append(PriorityTier(
                match=str(entry['match']),
                score=int(entry['score']),
                requires_timestamps=bool(entry.get('requires_timestamps', False)),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid priority tier entry: {entry}", details={'entry': entry}) from e
    return tuple(tiers)


def priority_score(
    candidate: Candidate,
    tiers: Sequence[PriorityTier] = DEFAULT_PRIORITY_TIERS,
    default: int = DEFAULT_PRIORITY
) -> int:
    """First matching tier wins; sources matching no tier get the default"""
    for tier in tiers:
        if tier.applies_to(candidate):
            return tier.score
    return default


# Phrases generative models use when they explain instead of answering
AI_TEXT_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"I cannot access",
        r"I don't have.*real-time",
        r"I do not have access",
        r"search directly",
        r"I'd recommend",
        r"To find.*lyrics",
        r"I cannot provide",
        r"I can't provide",
        r"I'm unable to",
        r"I am unable to",
        r"please check",
        r"you can search",
        r"visit.*website",
        r"try searching",
        r"copyright(?:ed)? lyrics",
    )
]

CONVERSATIONAL_WORDS = {'i', 'you', 'your', 'we', 'our', 'please', 'would', 'could', 'should'}

ERROR_PAGE_MARKERS = ('<html', '<!doctype', '<body')

NO_LYRICS_LINES = {
    'instrumental', '[instrumental]', '(instrumental)', 'no lyrics',
    'lyrics not available', 'sorry, no lyrics', 'music only',
}


def conversational_ratio(text: str) -> float:
    """Share of whitespace-separated words that are conversational pronouns/modals"""
    words = text.split()
    if not words:
        return 0.0
    conversational = sum(
        1 for w in words if re.sub(r"[^a-z]", "", w.lower()) in CONVERSATIONAL_WORDS
    )
    return conversational / len(words)


def looks_like_ai_text(text: str, check_conversational: bool = True) -> bool:
    """
    Detect explanatory or refusal text returned instead of lyrics

    True when any known meta phrase appears, or (when check_conversational
    is set) when conversational words make up more than 10% of all words.
    The ratio check misfires on plenty of real love songs, so callers only
    enable it for text recalled by a generative model.
    """
    if not text:
        return False

    if any(pattern.search(text) for pattern in AI_TEXT_PATTERNS):
        return True

    return check_conversational and conversational_ratio(text) > 0.1


def find_content_problem(
    text: str,
    min_length: int = 150,
    min_lines: int = 5,
    generated: bool = False
) -> Optional[str]:
    """
    Explain why a transcript cannot be used, or return None if it can

    Checks, in order: minimum length, HTML error pages, "404"/"not found"
    notices in short payloads, explicit no-lyrics notices, generative-model
    meta text and the minimum number of non-blank lines.

    Args:
        text: Formatted transcript
        min_length: Minimum viable length in characters
        min_lines: Minimum non-blank lines
        generated: The text came from a generative model (stricter meta-text check)
    """
    if not text or len(text) < min_length:
        return f"shorter than {min_length} characters"

    lower = text.lower()
    if any(marker in lower for marker in ERROR_PAGE_MARKERS):
        return "looks like an HTML page"

    if len(text) < 500 and ('404' in lower or 'not found' in lower):
        return "looks like a not-found notice"

    lines = [line.strip() for line in text.split('\n') if line.strip()]
    if any(line.lower() in NO_LYRICS_LINES for line in lines[:3]):
        return "marked as having no lyrics"

    if looks_like_ai_text(text, check_conversational=generated):
        return "looks like generated explanation text"

    if len(lines) < min_lines:
        return f"fewer than {min_lines} lines"

    return None


def validate_lyrics(text: str, min_length: int = 150, min_lines: int = 5, generated: bool = False) -> bool:
    """True when the transcript passes every content check"""
    return find_content_problem(text, min_length, min_lines, generated) is None
