"""
Provider adapter contract

Every lyrics source is wrapped by a BaseLyricsProvider subclass that turns
its ad hoc payloads into the common Candidate type. Subclasses implement
_search(query, attempt) and return a ProviderHit, None for "not found", or
raise; fetch() is the only public call and it never raises:

    provider = LrclibProvider()
    outcome = provider.fetch(Query("IU", "Blueming"))
    if isinstance(outcome, Candidate):
        ...
    else:
        logger.debug(f"{outcome.source} failed: {outcome.reason.value}")

fetch() handles, for every provider:
- the "is this provider configured" check
- a single backoff-and-retry when the provider signals too many requests
- mapping network errors, HTTP errors and unexpected exceptions to FailureReason
- formatting the transcript and rejecting payloads that are too short,
  look like error pages or generated explanation text, or have too few lines
- recording elapsed time and the dominant language in candidate metadata

Adapters never touch the cache or any other shared state.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from ..config.settings import get_settings, Settings
from ..utils.exceptions import FailureReason, ProviderError, RateLimitedError
from ..utils.helpers import detect_language, format_lyrics
from ..utils.logger import get_logger
from .models import Candidate, LyricsSource, Outcome, ProviderFailure, Query
from .scoring import find_content_problem


@dataclass
class ProviderHit:
    """Raw lyrics found by a provider, before formatting and validation"""
    lyrics: str
    confidence: float
    has_timestamps: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


class BaseLyricsProvider:
    """
    Base class for lyrics provider adapters

    Attributes:
        source: LyricsSource identifying the provider
        generative: True for generative-model recollection (stricter meta-text check)
        timeout: Per-request timeout in seconds
        session: requests.Session used for HTTP providers
    """

    source: LyricsSource = None
    generative = False

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__module__)

        self.timeout = self.settings.network.request_timeout
        self.min_length = self.settings.lyrics.min_length
        self.min_lines = self.settings.lyrics.min_lines
        self.rate_limit_backoff = self.settings.network.rate_limit_backoff

        self.session = requests.Session()
        self.session.headers.update({'User-Agent': self.settings.network.user_agent})

    @property
    def name(self) -> str:
        return self.source.value

    def is_configured(self) -> bool:
        return self.settings.providers.is_configured(self.name)

    def fetch(self, query: Query) -> Outcome:
        """
        Query the provider and return a Candidate or a ProviderFailure

        Never raises.
        """
        start_time = time.time()

        if not self.is_configured():
            return self._failure(FailureReason.NOT_CONFIGURED, "provider not configured", start_time)

        try:
            hit = self._search_with_backoff(query)
        except ProviderError as e:
            return self._failure(e.reason, e.message, start_time)
        except requests.Timeout as e:
            return self._failure(FailureReason.TIMEOUT, str(e), start_time)
        except requests.RequestException as e:
            return self._failure(FailureReason.NETWORK_ERROR, str(e), start_time)
        except Exception as e:
            self.logger.debug(f"{self.name} raised unexpectedly for {query}", exc_info=e)
            return self._failure(FailureReason.ERROR, f"{type(e).__name__}: {e}", start_time)

        if hit is None or not hit.lyrics:
            return self._failure(FailureReason.NOT_FOUND, "no match", start_time)

        text = format_lyrics(hit.lyrics)
        problem = find_content_problem(text, self.min_length, self.min_lines, generated=self.generative)
        if problem:
            reason = FailureReason.TOO_SHORT if len(text) < self.min_length else FailureReason.INVALID_CONTENT
            return self._failure(reason, problem, start_time)

        elapsed = time.time() - start_time
        metadata = dict(hit.metadata)
        metadata.setdefault('language', detect_language(text))
        metadata['elapsed'] = round(elapsed, 3)

        self.logger.info(f"{self.name} found {len(text)} chars for {query} in {elapsed:.2f}s")

        return Candidate(
            lyrics=text,
            source=self.name,
            has_timestamps=hit.has_timestamps,
            confidence=hit.confidence,
            metadata=metadata,
        )

    def _search_with_backoff(self, query: Query) -> Optional[ProviderHit]:
        try:
            return self._search(query, attempt=0)
        except RateLimitedError:
            self.logger.info(f"{self.name} rate limited, retrying once in {self.rate_limit_backoff}s")
            time.sleep(self.rate_limit_backoff)
            return self._search(query, attempt=1)

    def _search(self, query: Query, attempt: int = 0) -> Optional[ProviderHit]:
        """
        Provider-specific lookup

        Args:
            query: Normalized query
            attempt: 0 for the first call, 1 for the retry after a rate limit

        Returns:
            ProviderHit, or None when the provider has no match
        """
        raise NotImplementedError

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Issue an HTTP request with the provider timeout and status mapping

        Raises:
            RateLimitedError: On HTTP 429
            ProviderError: On any other HTTP status >= 400
        """
        kwargs.setdefault('timeout', self.timeout)
        response = self.session.request(method, url, **kwargs)

        if response.status_code == 429:
            raise RateLimitedError(f"HTTP 429 from {self.name}", details={'url': url})
        if response.status_code >= 400:
            raise ProviderError(
                f"HTTP {response.status_code}",
                FailureReason.HTTP_ERROR,
                status_code=response.status_code,
                details={'url': url}
            )
        return response

    def _failure(self, reason: FailureReason, message: str, start_time: float) -> ProviderFailure:
        elapsed = time.time() - start_time
        self.logger.debug(f"{self.name} failed ({reason.value}): {message}")
        return ProviderFailure(source=self.name, reason=reason, message=message, elapsed=round(elapsed, 3))

    def get_status(self) -> Dict[str, Any]:
        """Provider status for diagnostics"""
        return {
            'name': self.name,
            'configured': self.is_configured(),
            'generative': self.generative,
            'timeout': self.timeout,
        }
