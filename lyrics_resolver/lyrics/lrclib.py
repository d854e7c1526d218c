"""
LRCLIB lyrics provider

LRCLIB is an open, keyless lyrics database that serves both plain and
line-synchronized (LRC) lyrics. Synced lyrics are preferred because they
are curated against the recording and carry timestamps.

Search endpoint:
    GET https://lrclib.net/api/search?artist_name=<artist>&track_name=<title>

The first non-instrumental result is used. When the exact title misses,
title variants (without bracketed qualifiers or featuring credits) are
tried in order.
"""

from typing import Any, Dict, List, Optional

import requests

from ..utils.helpers import generate_title_variants, retry_on_failure
from .base import BaseLyricsProvider, ProviderHit
from .models import LyricsSource, Query


class LrclibProvider(BaseLyricsProvider):
    """LRCLIB search API provider"""

    source = LyricsSource.LRCLIB

    base_url = "https://lrclib.net/api"

    synced_confidence = 0.95
    plain_confidence = 0.85

    def _search(self, query: Query, attempt: int = 0) -> Optional[ProviderHit]:
        for title in generate_title_variants(query.title):
            results = self._search_tracks(query.artist, title)
            match = self._first_usable(results)
            if match:
                if title != query.title:
                    self.logger.debug(f"LRCLIB matched title variant '{title}' for {query}")
                return self._to_hit(match)
        return None

    @retry_on_failure(max_attempts=2, delay=0.5, exceptions=(requests.ConnectionError,))
    def _search_tracks(self, artist: str, title: str) -> List[Dict[str, Any]]:
        response = self._request(
            'GET',
            f"{self.base_url}/search",
            params={'artist_name': artist, 'track_name': title},
        )
        data = response.json()
        return data if isinstance(data, list) else []

    @staticmethod
    def _first_usable(results: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        for item in results:
            if item.get('instrumental'):
                continue
            if item.get('syncedLyrics') or item.get('plainLyrics'):
                return item
        return None

    def _to_hit(self, item: Dict[str, Any]) -> ProviderHit:
        synced = item.get('syncedLyrics')
        metadata = {
            'lrclib_id': item.get('id'),
            'artist': item.get('artistName'),
            'title': item.get('trackName'),
            'album': item.get('albumName'),
            'duration': item.get('duration'),
        }
        if synced:
            return ProviderHit(synced, self.synced_confidence, has_timestamps=True, metadata=metadata)
        return ProviderHit(item['plainLyrics'], self.plain_confidence, metadata=metadata)
