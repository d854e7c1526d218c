# lyrics_resolver/lyrics/__init__.py
"""
Lyrics resolution package

Provider adapters turn each lyrics source into Candidates; the fan-out
coordinator queries them concurrently; the scorer and selector rank the
candidates and merge the top two when neither is complete enough.

Usage:
Typically accessed through the resolver:
    resolver = get_lyrics_resolver()
    result = resolver.resolve(Query(artist, title))

Or individual providers can be used directly:
    outcome = LrclibProvider().fetch(Query(artist, title))
"""

# Main entry point - cache, fan-out, selection and verification in one call
from .processor import get_lyrics_resolver, reset_lyrics_resolver, LyricsResolver

# Data model shared by every stage of the pipeline
from .models import (
    LyricsSource,
    Query,
    Candidate,
    ProviderFailure,
    ScoredCandidate,
    ResolutionResult,
    NotFound,
    VerificationOutcome
)

# Fan-out and provider adapters
from .coordinator import FanOutCoordinator, build_providers, PROVIDER_CLASSES
from .base import BaseLyricsProvider
from .lrclib import LrclibProvider
from .genius import GeniusLyricsProvider
from .syncedlyrics import SyncedLyricsProvider
from .korean import MelonProvider, BugsProvider

# Pure scoring and merging functions
from .scoring import score_completeness, priority_score, validate_lyrics
from .merger import CandidateSelector, are_same_song, merge_lyrics, select_best

__all__ = [
    # Resolver
    'get_lyrics_resolver',
    'reset_lyrics_resolver',
    'LyricsResolver',

    # Data model
    'LyricsSource',
    'Query',
    'Candidate',
    'ProviderFailure',
    'ScoredCandidate',
    'ResolutionResult',
    'NotFound',
    'VerificationOutcome',

    # Fan-out and providers
    'FanOutCoordinator',
    'build_providers',
    'PROVIDER_CLASSES',
    'BaseLyricsProvider',
    'LrclibProvider',
    'GeniusLyricsProvider',
    'SyncedLyricsProvider',
    'MelonProvider',
    'BugsProvider',

    # Scoring and merging
    'score_completeness',
    'priority_score',
    'validate_lyrics',
    'CandidateSelector',
    'are_same_song',
    'merge_lyrics',
    'select_best',
]
