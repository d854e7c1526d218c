"""
Generative-model verifiers

Each verifier sends the song identity and the opening of a transcript to a
generative model and asks, from its training data, whether it knows the
song, whether the transcript matches and whether it reads like
explanation text instead of lyrics.

A verifier raises VerificationError when its call fails; the chain catches
it and moves on to the next verifier.
"""

from typing import Any, Dict, Optional

import requests

from ..config.settings import get_settings, Settings
from ..llm.clients import LLMClient, create_llm_client
from ..lyrics.models import VerificationOutcome
from ..utils.exceptions import ProviderError, VerificationError
from ..utils.helpers import extract_json_object
from ..utils.logger import get_logger


SYSTEM_PROMPT = "You are a music expert with knowledge of song lyrics. Answer with JSON only."

PROMPT_TEMPLATE = """Based on your training data, verify these lyrics.
Song: "{title}" by "{artist}"

Provided lyrics (first {sample_chars} chars):
\"\"\"
{sample}
\"\"\"

Tasks:
1. Do you know this song from your training?
2. If yes, do these lyrics match what you know?
3. Are they complete or partial?
4. Is this AI-generated explanation text rather than song lyrics?

Return JSON only:
{{
  "knownSong": true/false,
  "lyricsMatch": true/false,
  "isComplete": true/false,
  "confidence": 0-100,
  "isAIText": true/false,
  "expectedOpening": "first line you know if any"
}}"""


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1')
    return bool(value)


def _as_confidence(value: Any) -> int:
    try:
        confidence = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0
    return min(100, max(0, confidence))


class LLMVerifier:
    """
    Verifier backed by one generative-model vendor

    Attributes:
        name: Verifier id recorded on accepted outcomes
        sample_chars: How much of the transcript is sent
    """

    def __init__(
        self,
        name: str,
        settings: Optional[Settings] = None,
        client: Optional[LLMClient] = None
    ):
        self.name = name
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.sample_chars = self.settings.verification.sample_chars
        self._client = client

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = create_llm_client(self.name, self.settings, timeout=self.settings.verification.timeout)
        return self._client

    def is_configured(self) -> bool:
        if self._client is not None:
            return True
        return self.settings.providers.is_configured(self.name)

    def build_prompt(self, artist: str, title: str, lyrics: str) -> str:
        return PROMPT_TEMPLATE.format(
            artist=artist,
            title=title,
            sample_chars=self.sample_chars,
            sample=lyrics[:self.sample_chars],
        )

    def verify(self, artist: str, title: str, lyrics: str) -> VerificationOutcome:
        """
        Ask the model about one transcript

        Raises:
            VerificationError: If the model call fails
        """
        try:
            reply = self.client.complete(SYSTEM_PROMPT, self.build_prompt(artist, title, lyrics))
        except (ProviderError, requests.RequestException) as e:
            raise VerificationError(
                f"{self.name} verification failed: {e}",
                details={'verifier': self.name}
            ) from e

        return self.parse_reply(reply)

    def parse_reply(self, reply: str) -> VerificationOutcome:
        parsed = extract_json_object(reply)
        if parsed is None:
            # Models that refuse usually say they cannot know or tell the user to search
            self.logger.debug(f"{self.name} returned a non-JSON verification reply")
            return VerificationOutcome(
                confidence=0,
                is_ai_text='cannot' in reply or 'search' in reply,
                verifier=self.name,
            )

        return self._outcome_from(parsed)

    def _outcome_from(self, parsed: Dict[str, Any]) -> VerificationOutcome:
        opening = parsed.get('expectedOpening')
        return VerificationOutcome(
            known_song=_as_bool(parsed.get('knownSong', False)),
            lyrics_match=_as_bool(parsed.get('lyricsMatch', False)),
            is_complete=_as_bool(parsed.get('isComplete', False)),
            is_ai_text=_as_bool(parsed.get('isAIText', False)),
            confidence=_as_confidence(parsed.get('confidence', 0)),
            expected_opening=str(opening) if opening else None,
            verifier=self.name,
        )
