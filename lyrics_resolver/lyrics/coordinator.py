"""
Fan-out coordinator

Queries every configured provider concurrently and waits for all of them to
settle. It never stops at the first success: a slower source often returns
the complete transcript that the faster one truncated, and the selector
needs both to compare or merge them.

Deadline handling:
When the overall deadline expires, the calls still running are abandoned.
Each one is reported as a DEADLINE_EXCEEDED failure, and the executor is
shut down without waiting, so a result that arrives later is never seen by
the caller. Threads cannot be interrupted, so an abandoned call keeps
running in the background until its own request timeout fires.
"""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Sequence, Type

from ..config.settings import get_settings, Settings
from ..utils.exceptions import ConfigError, FailureReason
from ..utils.logger import get_logger
from .base import BaseLyricsProvider
from .genius import GeniusLyricsProvider
from .korean import BugsProvider, MelonProvider
from .llm import (
    ClaudeLyricsProvider,
    GeminiLyricsProvider,
    GroqLyricsProvider,
    OpenAILyricsProvider,
    PerplexityLyricsProvider,
)
from .lrclib import LrclibProvider
from .models import Candidate, Outcome, ProviderFailure, Query
from .syncedlyrics import SyncedLyricsProvider


PROVIDER_CLASSES: Dict[str, Type[BaseLyricsProvider]] = {
    'lrclib': LrclibProvider,
    'genius': GeniusLyricsProvider,
    'syncedlyrics': SyncedLyricsProvider,
    'melon': MelonProvider,
    'bugs': BugsProvider,
    'openai': OpenAILyricsProvider,
    'claude': ClaudeLyricsProvider,
    'gemini': GeminiLyricsProvider,
    'groq': GroqLyricsProvider,
    'perplexity': PerplexityLyricsProvider,
}


def build_providers(
    settings: Optional[Settings] = None,
    names: Optional[Iterable[str]] = None
) -> List[BaseLyricsProvider]:
    """
    Instantiate provider adapters by id

    Args:
        settings: Settings instance, the global one if None
        names: Provider ids, lyrics.providers from settings if None

    Raises:
        ConfigError: If a name is not a known provider id
    """
    settings = settings or get_settings()
    names = list(names) if names is not None else list(settings.lyrics.providers)

    unknown = [name for name in names if name not in PROVIDER_CLASSES]
    if unknown:
        raise ConfigError(f"Unknown providers: {', '.join(unknown)}", details={'providers': unknown})

    return [PROVIDER_CLASSES[name](settings) for name in names]


class FanOutCoordinator:
    """
    Concurrent provider fan-out with an overall deadline

    Attributes:
        providers: Adapters queried on every resolution
        max_workers: Upper bound on concurrent provider calls
        deadline: Default overall deadline in seconds (None waits indefinitely)
    """

    def __init__(
        self,
        providers: Sequence[BaseLyricsProvider],
        max_workers: int = 8,
        deadline: Optional[float] = 35.0
    ):
        self.providers = list(providers)
        self.max_workers = max(1, max_workers)
        self.deadline = deadline
        self.logger = get_logger(__name__)

    def resolve_raw(self, query: Query, deadline: Optional[float] = None) -> List[Outcome]:
        """
        Query all providers and collect every settled outcome

        Args:
            query: Normalized query
            deadline: Overall deadline in seconds, the coordinator default if None

        Returns:
            One Candidate or ProviderFailure per provider, in no particular
            order. Empty only when there are no providers.
        """
        if not self.providers:
            return []

        deadline = deadline if deadline is not None else self.deadline
        start_time = time.time()

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(self.providers)),
            thread_name_prefix="lyrics-fanout"
        )
        try:
            future_to_provider = {
                executor.submit(self._run_provider, provider, query): provider
                for provider in self.providers
            }
            done, pending = wait(future_to_provider, timeout=deadline)

            outcomes: List[Outcome] = [future.result() for future in done]

            elapsed = round(time.time() - start_time, 3)
            for future in pending:
                provider = future_to_provider[future]
                self.logger.info(f"{provider.name} abandoned after {deadline}s deadline for {query}")
                outcomes.append(ProviderFailure(
                    source=provider.name,
                    reason=FailureReason.DEADLINE_EXCEEDED,
                    message=f"no answer within {deadline}s",
                    elapsed=elapsed,
                ))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        found = sum(1 for outcome in outcomes if isinstance(outcome, Candidate))
        self.logger.debug(
            f"Fan-out for {query}: {found}/{len(outcomes)} candidates in {time.time() - start_time:.2f}s"
        )
        return outcomes

    def _run_provider(self, provider: BaseLyricsProvider, query: Query) -> Outcome:
        # fetch() already never raises; this guards adapters that break the contract
        try:
            return provider.fetch(query)
        except Exception as e:
            self.logger.debug(f"{provider.name} escaped its adapter boundary", exc_info=e)
            return ProviderFailure(
                source=provider.name,
                reason=FailureReason.ERROR,
                message=f"{type(e).__name__}: {e}",
            )
