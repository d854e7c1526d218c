"""
Generative-model recollection providers

Asks a generative model to recall a song's lyrics and answer with a strict
JSON object. These providers are a last resort: models paraphrase, stop
after the first chorus or answer with an explanation instead of lyrics.
They are marked generative so the adapter base applies the stricter
explanation-text check, and their low source priority keeps them from
beating a curated source of similar completeness.

When the vendor answers 429/400 the adapter base backs off once and the
retry (attempt 1) goes to the vendor's fallback model.
"""

from typing import Optional

from ..config.settings import Settings
from ..llm.clients import LLMClient, create_llm_client
from ..utils.helpers import extract_json_object
from .base import BaseLyricsProvider, ProviderHit
from .models import LyricsSource, Query


SYSTEM_PROMPT = """Find complete song lyrics with accurate metadata.

Return ONLY a JSON object with these fields:
{
  "artist": "exact artist name",
  "title": "exact song title",
  "album": "album name if known",
  "lyrics": "complete lyrics with \\n for line breaks",
  "language": "ko/en/ja/etc",
  "hasLyrics": true or false,
  "confidence": 0.0-1.0
}

Rules:
- Return the COMPLETE lyrics: every verse, chorus and bridge, not just the first verse
- Keep the original language and line breaks
- Set hasLyrics to false if you do not know the song; never explain or apologize"""


class LLMLyricsProvider(BaseLyricsProvider):
    """
    Base class for generative-model recollection providers

    Attributes:
        vendor: Vendor id passed to create_llm_client
        default_confidence: Used when the model reports no confidence
    """

    generative = True
    vendor: str = ""

    default_confidence = 0.6

    def __init__(self, settings: Optional[Settings] = None, client: Optional[LLMClient] = None):
        super().__init__(settings)
        self.timeout = self.settings.network.llm_timeout
        self._client = client

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = create_llm_client(self.vendor, self.settings, timeout=self.timeout)
        return self._client

    def build_prompt(self, query: Query) -> str:
        return (
            f'Find the complete lyrics for "{query.title}" by "{query.artist}". '
            f'Return valid JSON only.'
        )

    def _search(self, query: Query, attempt: int = 0) -> Optional[ProviderHit]:
        reply = self.client.complete(SYSTEM_PROMPT, self.build_prompt(query), use_fallback=attempt > 0)
        model = self.client.fallback_model if attempt > 0 else self.client.model

        parsed = extract_json_object(reply)
        if parsed is None:
            # Some vendors ignore the JSON instruction; plain text mentioning the song is still usable
            if query.title.lower() in reply.lower() or query.artist.lower() in reply.lower():
                return ProviderHit(reply, self.default_confidence, metadata={'model': model, 'format': 'text'})
            return None

        lyrics = parsed.get('lyrics')
        if not parsed.get('hasLyrics', True) or not isinstance(lyrics, str) or not lyrics.strip():
            return None

        try:
            confidence = float(parsed.get('confidence', self.default_confidence))
        except (TypeError, ValueError):
            confidence = self.default_confidence

        metadata = {'model': model}
        for key in ('artist', 'title', 'album', 'language'):
            if parsed.get(key):
                metadata[key] = parsed[key]

        return ProviderHit(lyrics, confidence, metadata=metadata)


class OpenAILyricsProvider(LLMLyricsProvider):
    source = LyricsSource.OPENAI
    vendor = "openai"


class ClaudeLyricsProvider(LLMLyricsProvider):
    source = LyricsSource.CLAUDE
    vendor = "claude"


class GeminiLyricsProvider(LLMLyricsProvider):
    source = LyricsSource.GEMINI
    vendor = "gemini"


class GroqLyricsProvider(LLMLyricsProvider):
    source = LyricsSource.GROQ
    vendor = "groq"


class PerplexityLyricsProvider(LLMLyricsProvider):
    """Perplexity answers from live web search, so it often knows newer releases"""

    source = LyricsSource.PERPLEXITY
    vendor = "perplexity"
