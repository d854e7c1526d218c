"""
Genius lyrics provider

Uses the lyricsgenius client to search the Genius API and scrape the song
page. Genius transcripts are community-curated and usually complete, with
section headers ([Verse 1], [Chorus], ...) that the completeness scorer
relies on, so headers are kept and only page chrome is stripped.

Matching:
Genius search is fuzzy and happily returns covers, remixes or a different
song by the same artist. The returned song is accepted only when both the
normalized title and artist are similar enough to the query.

Rate limiting:
Requests from one process are spaced by a minimum interval. A 429 from the
API surfaces as RateLimitedError so the adapter base applies its single
backoff-and-retry.
"""

import threading
import time
from typing import Optional

import lyricsgenius
import requests

from ..config.settings import Settings
from ..utils.exceptions import RateLimitedError
from ..utils.helpers import (
    calculate_similarity,
    normalize_artist_name,
    normalize_track_title,
    strip_genius_artifacts,
)
from .base import BaseLyricsProvider, ProviderHit
from .models import LyricsSource, Query


class GeniusLyricsProvider(BaseLyricsProvider):
    """
    Genius API lyrics provider

    Attributes:
        api_key: Genius client access token
        similarity_threshold: Minimum title and artist similarity (0-1)
        min_request_interval: Seconds between consecutive API requests
    """

    source = LyricsSource.GENIUS

    confidence = 0.9

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)

        self.api_key = self.settings.providers.genius_api_key
        self.similarity_threshold = self.settings.lyrics.similarity_threshold

        self.last_request_time = 0.0
        self.min_request_interval = 1.0
        self._rate_lock = threading.Lock()

        self._genius_client: Optional[lyricsgenius.Genius] = None

    @property
    def genius_client(self) -> lyricsgenius.Genius:
        """
        Lazily created lyricsgenius client

        Section headers are kept; live, remix and cover pages are excluded.
        """
        if self._genius_client is None:
            self._genius_client = lyricsgenius.Genius(
                self.api_key,
                timeout=self.timeout,
                retries=0,
                remove_section_headers=False,
                skip_non_songs=True,
                excluded_terms=["(Remix)", "(Live)", "(Cover)", "(Karaoke)"],
                verbose=False,
            )
            self.logger.debug("Genius API client initialized")
        return self._genius_client

    def _rate_limit(self) -> None:
        """Enforce the minimum interval between Genius requests"""
        with self._rate_lock:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.min_request_interval:
                time.sleep(self.min_request_interval - time_since_last)
            self.last_request_time = time.time()

    def _search(self, query: Query, attempt: int = 0) -> Optional[ProviderHit]:
        self._rate_limit()

        try:
            song = self.genius_client.search_song(query.title, query.artist, get_full_info=False)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 429:
                raise RateLimitedError("Genius rate limit reached") from e
            raise

        if song is None or not getattr(song, 'lyrics', None):
            return None

        if not self._is_match(query, song.title, song.artist):
            self.logger.debug(f"Genius returned '{song.artist} - {song.title}' for {query}, rejected")
            return None

        return ProviderHit(
            lyrics=strip_genius_artifacts(song.lyrics),
            confidence=self.confidence,
            metadata={
                'genius_id': getattr(song, 'id', None),
                'url': getattr(song, 'url', None),
                'artist': song.artist,
                'title': song.title,
            },
        )

    def _is_match(self, query: Query, found_title: str, found_artist: str) -> bool:
        title_score = calculate_similarity(
            normalize_track_title(query.title), normalize_track_title(found_title or "")
        )
        artist_score = calculate_similarity(
            normalize_artist_name(query.artist), normalize_artist_name(found_artist or "")
        )
        # Genius often lists "A & B" where the query has only "A"
        if normalize_artist_name(query.artist) in normalize_artist_name(found_artist or ""):
            artist_score = 1.0
        return title_score >= self.similarity_threshold and artist_score >= self.similarity_threshold
