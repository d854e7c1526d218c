"""
Korean music portal scrapers (Melon, Bugs)

Both portals expose no public lyrics API, so lookups are two HTML page
loads: an integrated search page yields the first track id, then the track
detail page carries the lyrics block. Korean releases are often missing or
incomplete on international sources, which is why these run alongside them.

The portals serve stripped pages to non-browser clients, so requests use a
browser User-Agent and a Korean Accept-Language.
"""

import re
from typing import Dict, Optional, Sequence
from urllib.parse import quote

from bs4 import BeautifulSoup

from ..config.settings import Settings
from ..utils.helpers import extract_text_from_html
from .base import BaseLyricsProvider, ProviderHit
from .models import LyricsSource, Query


class KoreanPortalProvider(BaseLyricsProvider):
    """
    Shared search-then-detail flow for the Korean portals

    Subclasses set the URL templates, the track id pattern and the CSS
    selectors tried, in order, on the detail page.
    """

    confidence = 0.9

    search_url: str = ""
    detail_url: str = ""
    track_id_pattern: re.Pattern = None
    lyrics_selectors: Sequence[str] = ()
    extra_headers: Dict[str, str] = {}

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.session.headers.update({
            'User-Agent': self.settings.network.browser_user_agent,
            'Accept': 'text/html,application/xhtml+xml',
            'Accept-Language': 'ko-KR,ko;q=0.9',
        })
        self.session.headers.update(self.extra_headers)

    def _search(self, query: Query, attempt: int = 0) -> Optional[ProviderHit]:
        search_url = self.search_url.format(q=quote(f"{query.artist} {query.title}"))
        search_html = self._request('GET', search_url).text

        match = self.track_id_pattern.search(search_html)
        if not match:
            return None

        track_id = match.group(1)
        detail_url = self.detail_url.format(id=track_id)
        detail_html = self._request('GET', detail_url, headers={'Referer': search_url}).text

        lyrics = self._extract_lyrics(detail_html)
        if not lyrics:
            self.logger.debug(f"{self.name} track {track_id} has no lyrics block")
            return None

        return ProviderHit(
            lyrics=lyrics,
            confidence=self.confidence,
            metadata={'track_id': track_id, 'url': detail_url},
        )

    def _extract_lyrics(self, html: str) -> str:
        soup = BeautifulSoup(html, 'html.parser')
        for selector in self.lyrics_selectors:
            element = soup.select_one(selector)
            if element is None:
                continue
            text = extract_text_from_html(element.decode_contents())
            if text:
                return text
        return ""


class MelonProvider(KoreanPortalProvider):
    """Melon (melon.com) scraper"""

    source = LyricsSource.MELON

    search_url = "https://www.melon.com/search/total/index.htm?q={q}&section=&linkOrText=T&ipath=srch_form"
    detail_url = "https://www.melon.com/song/detail.htm?songId={id}"
    track_id_pattern = re.compile(r"goSongDetail\('(\d+)'\)")
    lyrics_selectors = ('div.lyric', '#d_video_summary')
    extra_headers = {
        'Cookie': 'PCID=1234567890',
        'Cache-Control': 'no-cache',
    }


class BugsProvider(KoreanPortalProvider):
    """Bugs (music.bugs.co.kr) scraper"""

    source = LyricsSource.BUGS

    search_url = "https://music.bugs.co.kr/search/integrated?q={q}"
    detail_url = "https://music.bugs.co.kr/track/{id}"
    track_id_pattern = re.compile(r"track/(\d+)")
    lyrics_selectors = (
        'div.lyricsContainer',
        'xmp',
        'div.lyricsText',
        'section.sectionPadding.lyrics',
        'p.lyrics',
    )
