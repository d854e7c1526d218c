"""Test configuration and fixtures"""

import pytest
import tempfile
import threading
from pathlib import Path
from unittest.mock import Mock

from lyrics_resolver.config.settings import (
    Settings,
    LyricsConfig,
    ProvidersConfig,
    LLMConfig,
    CacheConfig,
    VerificationConfig,
    LoggingConfig,
    NetworkConfig,
)
from lyrics_resolver.lyrics.models import Candidate, VerificationOutcome


def build_lyrics(sections):
    """Join (header, lines) sections into a transcript with blank-line paragraphs"""
    return '\n\n'.join('\n'.join([header] + list(lines)) for header, lines in sections)


def _section_lines(name, count):
    return [f"{name} line {i}: the city lights are calling me home" for i in range(1, count + 1)]


# 6 paragraphs, 52 non-blank lines, verse1/verse2/chorus/bridge markers, ~2300 chars
COMPLETE_LYRICS = build_lyrics([
    ('[Verse 1]', _section_lines('first verse', 8)),
    ('[Chorus]', _section_lines('chorus', 8)),
    ('[Verse 2]', _section_lines('second verse', 8)),
    ('[Chorus]', _section_lines('chorus again', 8)),
    ('[Bridge]', _section_lines('bridge', 6)),
    ('[Chorus]', _section_lines('final chorus', 8)),
])

# Verse 1 + chorus only: 308 chars, 10 lines, 2 paragraphs -> score 27
PARTIAL_WITH_CHORUS = """[Verse 1]
Walking down the empty street tonight
Neon signs are flickering above me
Every window holds a different story
I keep on moving with the city lights

[Chorus]
Hold on hold on to the morning light
Hold on hold on we will be alright
Hold on hold on to the morning light
Never let it go until the night"""

# Verse 1 + verse 2 only: 308 chars, 10 lines, 2 paragraphs -> score 30
PARTIAL_WITH_SECOND_VERSE = """[Verse 1]
Walking down the empty street tonight
Neon signs are flickering above me
Every window holds a different story
I keep on moving with the city lights

[Verse 2]
Rain is falling on the silent river
Footsteps echo softly in the dark
Every shadow knows my secret name
I keep on dreaming of another start"""

# Unrelated song sharing no lines with the partials above
OTHER_SONG = """Sunflowers bending toward the summer sky
Golden fields that stretch beyond the hill
Grandma's porch and lemonade at noon
Crickets singing when the air is still
We ran barefoot down the gravel road
Chasing fireflies until the morning came
Nothing ever changes in that town
And nobody there remembers my name"""


class FakeProvider:
    """Provider double returning a fixed outcome, optionally after waiting on an event"""

    generative = False

    def __init__(self, name, outcome=None, wait_for=None, error=None):
        self.name = name
        self.outcome = outcome
        self.wait_for = wait_for
        self.error = error
        self.calls = 0
        self.finished = threading.Event()

    def is_configured(self):
        return True

    def fetch(self, query):
        self.calls += 1
        try:
            if self.wait_for is not None:
                self.wait_for.wait(timeout=5)
            if self.error is not None:
                raise self.error
            return self.outcome
        finally:
            self.finished.set()

    def get_status(self):
        return {'name': self.name, 'configured': True, 'generative': False, 'timeout': 1}


class FakeVerifier:
    """Verifier double returning a fixed confidence"""

    def __init__(self, name, confidence, configured=True, error=None):
        self.name = name
        self.confidence = confidence
        self.configured = configured
        self.error = error
        self.verify = Mock(side_effect=self._verify)

    def is_configured(self):
        return self.configured

    def _verify(self, artist, title, lyrics):
        if self.error is not None:
            raise self.error
        return VerificationOutcome(
            known_song=True,
            lyrics_match=True,
            is_complete=True,
            confidence=self.confidence,
            verifier=self.name,
        )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def settings():
    """Settings with every section at its defaults, no credentials and no durable cache"""
    settings = Settings()
    settings.lyrics = LyricsConfig()
    settings.providers = ProvidersConfig()
    settings.llm = LLMConfig()
    settings.cache = CacheConfig(durable_backend='none')
    settings.verification = VerificationConfig()
    settings.logging = LoggingConfig()
    settings.network = NetworkConfig(rate_limit_backoff=0.0)
    return settings


@pytest.fixture
def mock_settings():
    """Mock settings for code that only reads a few attributes"""
    settings = Mock()
    settings.lyrics.min_length = 150
    settings.lyrics.min_lines = 5
    settings.network.request_timeout = 8
    settings.network.llm_timeout = 25
    settings.network.rate_limit_backoff = 0.0
    settings.network.user_agent = "lyrics-resolver-tests"
    settings.network.browser_user_agent = "Mozilla/5.0"
    return settings


@pytest.fixture
def complete_candidate():
    return Candidate(lyrics=COMPLETE_LYRICS, source='genius', confidence=0.9)


@pytest.fixture
def partial_candidates():
    """Two halves of the same song, each missing a different section"""
    return [
        Candidate(lyrics=PARTIAL_WITH_CHORUS, source='genius', confidence=0.9),
        Candidate(lyrics=PARTIAL_WITH_SECOND_VERSE, source='bugs', confidence=0.9),
    ]
