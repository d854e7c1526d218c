"""
Data model for lyrics resolution

Query identifies a request; providers turn it into Candidates or
ProviderFailures; the selector derives ScoredCandidates; the resolver
returns a ResolutionResult or NotFound. VerificationOutcome is produced by
the verification chain.

Candidates are immutable once built. Merging two candidates produces a new
Candidate rather than editing either input.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..utils.exceptions import FailureReason, InvalidQueryError
from ..utils.helpers import make_cache_key, normalize_whitespace


class LyricsSource(Enum):
    """Provider ids. Merged results use "a+b" strings instead of a member."""
    LRCLIB = "lrclib"
    GENIUS = "genius"
    SYNCEDLYRICS = "syncedlyrics"
    MELON = "melon"
    BUGS = "bugs"
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"
    GROQ = "groq"
    PERPLEXITY = "perplexity"


@dataclass(frozen=True, eq=False)
class Query:
    """
    Resolution request identity

    Artist and title are trimmed and whitespace-collapsed on construction,
    keeping their original case for display. Equality and hashing use the
    lower-cased cache key, so two queries differing only in case or spacing
    are the same request.

    Raises:
        InvalidQueryError: If artist or title is empty after normalization
    """
    artist: str
    title: str

    def __post_init__(self):
        artist = normalize_whitespace(self.artist or "")
        title = normalize_whitespace(self.title or "")
        if not artist or not title:
            raise InvalidQueryError(
                "Both artist and title are required",
                details={'artist': self.artist, 'title': self.title}
            )
        object.__setattr__(self, 'artist', artist)
        object.__setattr__(self, 'title', title)

    @property
    def cache_key(self) -> str:
        return make_cache_key(self.artist, self.title)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Query):
            return NotImplemented
        return self.cache_key == other.cache_key

    def __hash__(self) -> int:
        return hash(self.cache_key)

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}"


@dataclass(frozen=True)
class Candidate:
    """
    One provider's transcript for a query

    Attributes:
        lyrics: Formatted transcript text
        source: Provider id, or "a+b" for a merged candidate
        has_timestamps: Whether the text carries LRC line timestamps
        confidence: Provider-reported trust in [0, 1]
        metadata: Provider-specific extras (album, url, language, model...)
    """
    lyrics: str
    source: str
    has_timestamps: bool = False
    confidence: float = 0.5
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Clamp rather than reject: providers report confidence loosely
        object.__setattr__(self, 'confidence', min(1.0, max(0.0, float(self.confidence))))
        object.__setattr__(self, 'metadata', dict(self.metadata))

    @property
    def length(self) -> int:
        return len(self.lyrics)


@dataclass(frozen=True)
class ProviderFailure:
    """A provider call that produced no usable candidate"""
    source: str
    reason: FailureReason
    message: str = ""
    elapsed: Optional[float] = None

    def __str__(self) -> str:
        return f"{self.source}: {self.reason.value}{f' ({self.message})' if self.message else ''}"


Outcome = Union[Candidate, ProviderFailure]


@dataclass(frozen=True)
class ScoredCandidate:
    """
    Candidate plus its derived selection scores

    Derived data only: recomputed whenever candidates are selected and never
    stored on its own.
    """
    candidate: Candidate
    completeness_score: int
    priority_score: int

    @property
    def merged(self) -> bool:
        return bool(self.candidate.metadata.get('merged'))

    @property
    def sources(self) -> List[str]:
        return list(self.candidate.metadata.get('sources') or [self.candidate.source])


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Result of asking a knowledge source about a transcript

    Attributes:
        known_song: The verifier recognizes the song
        lyrics_match: The transcript matches what the verifier knows
        is_complete: The transcript looks complete rather than partial
        is_ai_text: The transcript looks like explanatory/refusal text
        confidence: Verifier confidence 0-100
        expected_opening: First line the verifier expects, if it offered one
        verifier: Name of the verifier that produced this outcome ("none" if unverified)
    """
    known_song: bool = False
    lyrics_match: bool = False
    is_complete: bool = False
    is_ai_text: bool = False
    confidence: int = 0
    expected_opening: Optional[str] = None
    verifier: str = "none"

    @property
    def is_correct(self) -> bool:
        return self.lyrics_match and not self.is_ai_text

    @property
    def verified(self) -> bool:
        return self.verifier != "none"

    @classmethod
    def unverified(cls) -> 'VerificationOutcome':
        """Default outcome when no verifier reached the confidence threshold"""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'known_song': self.known_song,
            'lyrics_match': self.lyrics_match,
            'is_complete': self.is_complete,
            'is_ai_text': self.is_ai_text,
            'confidence': self.confidence,
            'expected_opening': self.expected_opening,
            'verifier': self.verifier,
            'is_correct': self.is_correct,
        }


@dataclass(frozen=True)
class ResolutionResult:
    """
    Externally visible result of a successful resolution

    Written once to the cache and read many times until expiry. Carries the
    verification outcome when the chain was run.
    """
    lyrics: str
    source: str
    confidence: float
    has_timestamps: bool
    completeness_score: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    merged: bool = False
    sources: Tuple[str, ...] = ()
    from_cache: bool = False
    verification: Optional[VerificationOutcome] = None

    found = True

    @property
    def low_confidence(self) -> bool:
        """True when verification ran and no verifier confirmed the transcript"""
        return self.verification is not None and not self.verification.verified

    @classmethod
    def from_scored(cls, scored: ScoredCandidate) -> 'ResolutionResult':
        candidate = scored.candidate
        return cls(
            lyrics=candidate.lyrics,
            source=candidate.source,
            confidence=candidate.confidence,
            has_timestamps=candidate.has_timestamps,
            completeness_score=scored.completeness_score,
            metadata=dict(candidate.metadata),
            merged=scored.merged,
            sources=tuple(scored.sources),
        )

    def with_verification(self, outcome: VerificationOutcome) -> 'ResolutionResult':
        return replace(self, verification=outcome)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the durable cache tier (verification is not stored)"""
        return {
            'lyrics': self.lyrics,
            'source': self.source,
            'confidence': self.confidence,
            'has_timestamps': self.has_timestamps,
            'completeness_score': self.completeness_score,
            'metadata': self.metadata,
            'merged': self.merged,
            'sources': list(self.sources),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResolutionResult':
        return cls(
            lyrics=data['lyrics'],
            source=data['source'],
            confidence=float(data.get('confidence', 0.0)),
            has_timestamps=bool(data.get('has_timestamps', False)),
            completeness_score=int(data.get('completeness_score', 0)),
            metadata=dict(data.get('metadata') or {}),
            merged=bool(data.get('merged', False)),
            sources=tuple(data.get('sources') or ()),
        )


@dataclass(frozen=True)
class NotFound:
    """
    No provider produced a usable transcript

    A normal outcome, not an error. Distinguishable from a low-confidence
    ResolutionResult through the `found` attribute.
    """
    query: Query
    failures: Tuple[ProviderFailure, ...] = ()
    message: str = "No lyrics found"

    found = False

    def __str__(self) -> str:
        return f"{self.message} for {self.query}"
