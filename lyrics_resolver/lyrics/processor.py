"""
Lyrics resolution entry point

LyricsResolver wires the pipeline together:

    cache check -> fan-out -> scoring -> selection/merge -> cache store -> verification

    resolver = get_lyrics_resolver()
    result = resolver.resolve(Query("IU", "Blueming"))
    if result.found:
        print(result.source, result.completeness_score)
        print(result.lyrics)

resolve() returns a ResolutionResult or NotFound; "no lyrics anywhere" is a
normal outcome, not an exception. Building the Query is the only step that
raises (InvalidQueryError on an empty artist or title).

The result is cached before verification runs, so a slow or failing
verifier never costs the fresh result. The verification outcome is attached
to the returned result only and is not stored in the durable tier.
"""

import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Union

from ..cache.layer import LyricsCache, create_cache
from ..config.settings import get_settings, Settings
from ..utils.helpers import is_only_first_verse
from ..utils.logger import get_logger, log_performance
from ..verification.chain import VerificationChain, create_verification_chain
from .base import BaseLyricsProvider
from .coordinator import FanOutCoordinator, build_providers
from .merger import CandidateSelector
from .models import Candidate, NotFound, ProviderFailure, Query, ResolutionResult, VerificationOutcome
from .scoring import DEFAULT_SCORING_TABLE, tiers_from_config


class LyricsResolver:
    """
    Resolves a query to the best available transcript

    Every collaborator can be injected; anything left out is built from
    settings. Tests typically pass fake providers and a memory-only cache.

    Attributes:
        cache: Two-tier cache, or None when caching is disabled
        coordinator: Provider fan-out
        selector: Candidate ranking and merging
        verification_chain: Verifiers run when verification is requested
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        providers: Optional[Sequence[BaseLyricsProvider]] = None,
        cache: Optional[LyricsCache] = None,
        selector: Optional[CandidateSelector] = None,
        verification_chain: Optional[VerificationChain] = None
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        if providers is None:
            providers = build_providers(self.settings)

        self.coordinator = FanOutCoordinator(
            providers,
            max_workers=self.settings.lyrics.max_workers,
            deadline=self.settings.lyrics.deadline,
        )

        if cache is None and self.settings.cache.enabled:
            cache = create_cache(self.settings)
        self.cache = cache

        self.selector = selector or CandidateSelector(
            table=DEFAULT_SCORING_TABLE,
            tiers=tiers_from_config(self.settings.lyrics.priority_tiers),
            default_priority=self.settings.lyrics.default_priority,
            good_enough_score=self.settings.lyrics.good_enough_score,
            significance_gap=self.settings.lyrics.significance_gap,
        )

        self._verification_chain = verification_chain

        self._stats_lock = threading.Lock()
        self.stats = {
            'total_resolutions': 0,
            'cache_hits': 0,
            'found': 0,
            'not_found': 0,
            'merges': 0,
            'verifications': 0,
            'source_wins': {},
        }

    @property
    def verification_chain(self) -> VerificationChain:
        if self._verification_chain is None:
            self._verification_chain = create_verification_chain(self.settings)
        return self._verification_chain

    @property
    def providers(self) -> List[BaseLyricsProvider]:
        return self.coordinator.providers

    def _count(self, key: str, source: Optional[str] = None) -> None:
        with self._stats_lock:
            self.stats[key] += 1
            if source:
                wins = self.stats['source_wins']
                wins[source] = wins.get(source, 0) + 1

    @log_performance
    def resolve(
        self,
        query: Query,
        deadline: Optional[float] = None,
        verify: Optional[bool] = None,
        use_cache: bool = True
    ) -> Union[ResolutionResult, NotFound]:
        """
        Resolve a query to the best transcript

        Args:
            query: Normalized query
            deadline: Overall fan-out deadline in seconds, settings default if None
            verify: Run the verification chain; verification.enabled if None
            use_cache: Read from and write to the cache

        Returns:
            ResolutionResult, or NotFound carrying every provider failure
        """
        self._count('total_resolutions')
        should_verify = self.settings.verification.enabled if verify is None else verify

        if use_cache and self.cache is not None:
            cached = self.cache.get(query)
            if cached is not None:
                self.logger.info(f"Cache hit for {query} ({cached.source})")
                self._count('cache_hits')
                return self._maybe_verify(query, cached, should_verify)

        outcomes = self.coordinator.resolve_raw(query, deadline)
        candidates = [o for o in outcomes if isinstance(o, Candidate)]
        failures = tuple(o for o in outcomes if isinstance(o, ProviderFailure))

        for failure in failures:
            self.logger.debug(f"Provider failure for {query}: {failure}")

        best = self.selector.select(candidates)
        if best is None:
            self._count('not_found')
            self.logger.info(f"No lyrics found for {query} ({len(failures)} providers failed)")
            return NotFound(query=query, failures=failures)

        result = ResolutionResult.from_scored(best)
        result = replace(result, metadata={
            **result.metadata,
            'first_verse_only': is_only_first_verse(result.lyrics),
            'candidate_count': len(candidates),
            'failed_providers': [f.source for f in failures],
        })

        self._count('found', result.source)
        if result.merged:
            self._count('merges')

        self.logger.info(
            f"Resolved {query} from {result.source} "
            f"(completeness {result.completeness_score}, {len(candidates)} candidates)"
        )

        if use_cache and self.cache is not None:
            self.cache.put(query, result)

        return self._maybe_verify(query, result, should_verify)

    def _maybe_verify(self, query: Query, result: ResolutionResult, should_verify: bool) -> ResolutionResult:
        if not should_verify:
            return result
        outcome = self.verify(query.artist, query.title, result.lyrics)
        return result.with_verification(outcome)

    def resolve_lyrics(self, artist: str, title: str, **options) -> Union[ResolutionResult, NotFound]:
        """Convenience wrapper building the Query from plain strings"""
        return self.resolve(Query(artist, title), **options)

    def verify(self, artist: str, title: str, lyrics: str) -> VerificationOutcome:
        """
        Run the verification chain on any transcript

        Usable on text obtained elsewhere, such as a user-submitted correction.
        Never raises; returns the unverified outcome when no verifier is sure.
        """
        self._count('verifications')
        return self.verification_chain.verify(artist, title, lyrics)

    def provider_status(self) -> List[Dict[str, Any]]:
        return [provider.get_status() for provider in self.providers]

    def get_processing_stats(self) -> Dict[str, Any]:
        """Resolution statistics plus cache statistics when a cache is attached"""
        with self._stats_lock:
            stats = dict(self.stats)
            stats['source_wins'] = dict(self.stats['source_wins'])

        total = stats['total_resolutions']
        resolved = stats['found'] + stats['cache_hits']
        stats['success_rate'] = (resolved / total * 100) if total else 0.0
        stats['providers'] = [p.name for p in self.providers]

        if self.cache is not None:
            stats['cache'] = self.cache.stats()
        return stats

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()


_lyrics_resolver: Optional[LyricsResolver] = None


def get_lyrics_resolver() -> LyricsResolver:
    """
    Get the global lyrics resolver instance

    Built on first use from the global settings; one cache and one set of
    providers are shared by every caller in the process.
    """
    global _lyrics_resolver
    if not _lyrics_resolver:
        _lyrics_resolver = LyricsResolver()
    return _lyrics_resolver


def reset_lyrics_resolver() -> None:
    """Drop the global resolver so the next call rebuilds it from current settings"""
    global _lyrics_resolver
    if _lyrics_resolver is not None:
        _lyrics_resolver.close()
    _lyrics_resolver = None
