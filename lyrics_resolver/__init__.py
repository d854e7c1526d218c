"""
lyrics-resolver: find the most complete lyrics for a song across many sources

Queries curated databases, synced-lyrics aggregators, Korean music portals
and generative models concurrently, scores every transcript for
completeness, merges partial transcripts when that helps, caches the
result and optionally asks independent models to verify it.

    from lyrics_resolver import get_lyrics_resolver, Query

    result = get_lyrics_resolver().resolve(Query("IU", "Blueming"))
    if result.found:
        print(result.lyrics)

Modules:
- config: YAML + environment settings
- lyrics: data model, providers, fan-out, scoring, merging, resolver
- cache: in-process LRU/TTL tier and durable SQLite tier
- llm: generative-model vendor clients
- verification: verifier chain
- utils: logging, exceptions, text helpers, validation
"""

__version__ = "1.0.0"
__author__ = "lyrics-resolver contributors"

from .lyrics import (
    get_lyrics_resolver,
    reset_lyrics_resolver,
    LyricsResolver,
    Query,
    Candidate,
    ResolutionResult,
    NotFound,
    VerificationOutcome
)

__all__ = [
    '__version__',
    'get_lyrics_resolver',
    'reset_lyrics_resolver',
    'LyricsResolver',
    'Query',
    'Candidate',
    'ResolutionResult',
    'NotFound',
    'VerificationOutcome',
]
