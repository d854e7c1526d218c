"""
syncedlyrics aggregator provider

Wraps the optional syncedlyrics library, which scrapes several public LRC
sources behind one search call. The library is an extra; without it the
provider reports itself as not configured and the fan-out skips it.

The library prints progress to stderr and logs through its own loggers.
Both are silenced so the CLI output stays clean.
"""

import io
import logging
import os
from contextlib import redirect_stderr
from typing import Optional

from ..utils.helpers import has_lrc_timestamps
from .base import BaseLyricsProvider, ProviderHit
from .models import LyricsSource, Query

try:
    os.environ.setdefault('SYNCEDLYRICS_VERBOSE', '0')
    logging.getLogger('syncedlyrics').setLevel(logging.WARNING)

    import syncedlyrics

    HAS_SYNCEDLYRICS = True
except ImportError:
    HAS_SYNCEDLYRICS = False
    syncedlyrics = None


class SyncedLyricsProvider(BaseLyricsProvider):
    """
    syncedlyrics library provider

    Attributes:
        upstream_providers: Sources passed to syncedlyrics.search (Musixmatch
            is left out because it needs a token and floods the log)
    """

    source = LyricsSource.SYNCEDLYRICS

    confidence = 0.8

    upstream_providers = ["Lrclib", "NetEase", "Megalobiz", "Genius"]

    def is_configured(self) -> bool:
        return HAS_SYNCEDLYRICS and super().is_configured()

    def _search(self, query: Query, attempt: int = 0) -> Optional[ProviderHit]:
        search_term = f"{query.artist} {query.title}"

        with redirect_stderr(io.StringIO()):
            lyrics = syncedlyrics.search(search_term, providers=self.upstream_providers)

        if not lyrics or not lyrics.strip():
            return None

        return ProviderHit(
            lyrics=lyrics,
            confidence=self.confidence,
            has_timestamps=has_lrc_timestamps(lyrics),
            metadata={'search_term': search_term},
        )
