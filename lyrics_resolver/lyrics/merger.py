"""
Candidate selection and transcript merging

Selection state machine:
    no candidates            -> None (caller reports "not found")
    candidates -> scored -> sorted -> selected
    selected with low score  -> merge attempted -> selected (merge kept only if it scores higher)

Sorting uses three levels because none of the signals is reliable alone:
1. Completeness score, when the two compared candidates differ by more
   than the significance gap
2. Source priority, under the same gap rule
3. Transcript length, longest first

Merging is best effort. It can misplace a verse when markers are missing
or inconsistent across languages; the re-score check keeps a bad merge
from ever replacing a better original.
"""

import functools
import re
from typing import List, Optional, Sequence

from .models import Candidate, ScoredCandidate
from .scoring import (
    DEFAULT_PRIORITY,
    DEFAULT_PRIORITY_TIERS,
    DEFAULT_SCORING_TABLE,
    PriorityTier,
    ScoringTable,
    priority_score,
    score_completeness,
)
from ..utils.logger import get_logger


logger = get_logger(__name__)

MARKER_LINE = re.compile(r'^\[.*\]$')

# LRC timestamps ([00:12.34]) and ID tags ([ar:Artist]) are not section markers
LRC_TAG_LINE = re.compile(r'^(?:\[\d{1,2}:\d{2}(?:[.:]\d{1,3})?\])+$|^\[[a-z#]+:[^\]]*\]$')

# Secondary lines that open a block worth splicing into the primary
SPLICE_TRIGGERS = ('2절', 'Verse 2', 'Bridge', '[Bridge]')

# Primary lines after which a spliced block is inserted
SPLICE_ANCHORS = ('1절', 'Verse 1', 'Chorus', '후렴')

SAME_SONG_PREFIX_LINES = 5
SAME_SONG_MIN_MATCHES = 2


def _non_blank_lines(text: str) -> List[str]:
    return [line for line in text.split('\n') if line.strip()]


def are_same_song(first: str, second: str) -> bool:
    """
    Judge whether two transcripts describe the same song

    At least 2 of the first 5 non-blank lines of `first` must overlap, as a
    case-insensitive substring in either direction, with one of the first 5
    non-blank lines of `second`.
    """
    if not first or not second:
        return False

    lines1 = [line.lower() for line in _non_blank_lines(first)[:SAME_SONG_PREFIX_LINES]]
    lines2 = [line.lower() for line in _non_blank_lines(second)[:SAME_SONG_PREFIX_LINES]]

    matches = 0
    for line1 in lines1:
        if any(line1 in line2 or line2 in line1 for line2 in lines2):
            matches += 1

    return matches >= SAME_SONG_MIN_MATCHES


def _is_section_marker(line: str) -> bool:
    return bool(MARKER_LINE.match(line)) and not LRC_TAG_LINE.match(line)


def _is_trigger(line: str) -> bool:
    return any(trigger in line for trigger in SPLICE_TRIGGERS)


def _take_block(lines: Sequence[str], start: int) -> List[str]:
    """Lines from `start` up to the first blank line once more than 3 lines were taken"""
    block = []
    for line in lines[start:]:
        if line.strip() == '' and len(block) > 3:
            break
        block.append(line)
    while block and not block[-1].strip():
        block.pop()
    return block


def _section_end(lines: Sequence[str], anchor: int) -> int:
    """Index just past the section opened at `anchor` (next blank line or end)"""
    for k in range(anchor + 1, len(lines)):
        if not lines[k].strip():
            return k
    return len(lines)


def _tidy(lines: Sequence[str]) -> str:
    """Drop repeats of the preceding non-blank line and collapse blank runs"""
    cleaned = []
    last_text = None
    for line in lines:
        text = line.strip()
        if text and text == last_text:
            continue
        cleaned.append(line)
        if text:
            last_text = text
    return re.sub(r'\n{3,}', '\n\n', '\n'.join(cleaned)).strip()


def merge_lyrics(primary: str, secondary: str) -> str:
    """
    Synthesize one transcript from two partial ones

    1. If either side is empty the other is returned unchanged.
    2. If the two are not the same song, the longer one is returned unchanged.
    3. Walk the primary line by line. Where the secondary has a bracketed
       section marker (not an LRC timestamp or tag) at the same position
       that the primary lacks entirely, the marker is emitted ahead of the
       primary line. Markers opening a second verse or bridge are left
       to step 4.
    4. Each secondary line opening a second verse or bridge that has no
       counterpart in the primary is spliced, with the block it opens,
       after the section of the last first-verse or chorus anchor of the
       merged text. Without an anchor the block is appended after a blank
       line.
    5. Lines repeating the preceding non-blank line are dropped and blank
       runs collapsed.

    Args:
        primary: Higher-ranked transcript
        secondary: Transcript to borrow structure from

    Returns:
        Merged transcript text
    """
    if not primary:
        return secondary or ''
    if not secondary:
        return primary

    if not are_same_song(primary, secondary):
        return primary if len(primary) > len(secondary) else secondary

    primary_lines = primary.split('\n')
    secondary_lines = secondary.split('\n')
    primary_texts = {line.strip() for line in primary_lines if line.strip()}

    merged: List[str] = []
    for k, primary_line in enumerate(primary_lines):
        if k < len(secondary_lines):
            secondary_line = secondary_lines[k].strip()
            if (_is_section_marker(secondary_line)
                    and secondary_line not in primary_texts
                    and not _is_trigger(secondary_line)
                    and not _is_section_marker(primary_line.strip())):
                merged.append(secondary_line)
        merged.append(primary_line)

    i = 0
    while i < len(secondary_lines):
        secondary_line = secondary_lines[i]
        if not _is_trigger(secondary_line) or secondary_line.strip() in primary_texts:
            i += 1
            continue

        block = _take_block(secondary_lines, i)
        for j in range(len(merged) - 1, -1, -1):
            if any(anchor in merged[j] for anchor in SPLICE_ANCHORS):
                end = _section_end(merged, j)
                merged[end:end] = [''] + block
                break
        else:
            merged.extend([''] + block)
        i += max(1, len(block))

    return _tidy(merged)


def _compare(a: ScoredCandidate, b: ScoredCandidate, gap: int) -> int:
    if abs(a.completeness_score - b.completeness_score) > gap:
        return b.completeness_score - a.completeness_score
    if abs(a.priority_score - b.priority_score) > gap:
        return b.priority_score - a.priority_score
    return b.candidate.length - a.candidate.length


class CandidateSelector:
    """
    Ranks candidates and optionally merges the top two

    Attributes:
        table: Completeness weight table
        tiers: Source priority tiers
        default_priority: Priority for sources matching no tier
        good_enough_score: Top score below which a merge is attempted
        significance_gap: Score difference that decides a sort level alone
    """

    def __init__(
        self,
        table: ScoringTable = DEFAULT_SCORING_TABLE,
        tiers: Sequence[PriorityTier] = DEFAULT_PRIORITY_TIERS,
        default_priority: int = DEFAULT_PRIORITY,
        good_enough_score: int = 70,
        significance_gap: int = 10
    ):
        self.table = table
        self.tiers = tuple(tiers)
        self.default_priority = default_priority
        self.good_enough_score = good_enough_score
        self.significance_gap = significance_gap

    def score(self, candidate: Candidate) -> ScoredCandidate:
        return ScoredCandidate(
            candidate=candidate,
            completeness_score=score_completeness(candidate.lyrics, self.table),
            priority_score=priority_score(candidate, self.tiers, self.default_priority),
        )

    def rank(self, candidates: Sequence[Candidate]) -> List[ScoredCandidate]:
        """Score and sort candidates, best first"""
        scored = [self.score(c) for c in candidates]
        key = functools.cmp_to_key(lambda a, b: _compare(a, b, self.significance_gap))
        return sorted(scored, key=key)

    def select(self, candidates: Sequence[Candidate]) -> Optional[ScoredCandidate]:
        """
        Pick the final candidate

        Returns:
            The best ScoredCandidate (possibly a merged one), or None when
            there are no candidates
        """
        if not candidates:
            return None

        ranked = self.rank(candidates)
        best = ranked[0]

        if best.completeness_score >= self.good_enough_score or len(ranked) < 2:
            return best

        runner_up = ranked[1]
        return self._try_merge(best, runner_up)

    def _try_merge(self, best: ScoredCandidate, runner_up: ScoredCandidate) -> ScoredCandidate:
        first, second = best.candidate, runner_up.candidate

        if not are_same_song(first.lyrics, second.lyrics):
            # Different songs under similar titles: keep the longer text only if it also scores higher
            longer = runner_up if second.length > first.length else best
            if longer is not best and longer.completeness_score > best.completeness_score:
                logger.debug(f"Merge skipped, different songs; keeping longer {second.source}")
                return longer
            logger.debug(f"Merge skipped, {first.source} and {second.source} are different songs")
            return best

        merged_text = merge_lyrics(first.lyrics, second.lyrics)
        merged_score = score_completeness(merged_text, self.table)

        if merged_score <= best.completeness_score:
            logger.debug(
                f"Merge of {first.source}+{second.source} not beneficial "
                f"({merged_score} <= {best.completeness_score})"
            )
            return best

        merged = Candidate(
            lyrics=merged_text,
            source=f"{first.source}+{second.source}",
            has_timestamps=first.has_timestamps or second.has_timestamps,
            confidence=max(first.confidence, second.confidence),
            metadata={
                **first.metadata,
                'merged': True,
                'sources': [first.source, second.source],
                'completeness_score': merged_score,
            },
        )
        logger.info(
            f"Merged {first.source}+{second.source}: "
            f"{best.completeness_score} -> {merged_score}"
        )
        return ScoredCandidate(
            candidate=merged,
            completeness_score=merged_score,
            priority_score=max(best.priority_score, runner_up.priority_score),
        )


def select_best(candidates: Sequence[Candidate], **options) -> Optional[ScoredCandidate]:
    """Convenience wrapper around CandidateSelector(**options).select()"""
    return CandidateSelector(**options).select(candidates)
