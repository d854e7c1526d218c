# tests/test_verification.py
"""Test the verification chain and the generative-model verifier"""

from unittest.mock import Mock

import pytest
import requests

from lyrics_resolver.utils.exceptions import ProviderError, VerificationError
from lyrics_resolver.verification import LLMVerifier, VerificationChain, create_verification_chain

from conftest import COMPLETE_LYRICS, FakeVerifier


class TestVerificationChain:
    """Test sequential short-circuit verification"""

    def test_first_confident_outcome_wins(self):
        first = FakeVerifier('gemini', 30)
        second = FakeVerifier('openai', 80)
        third = FakeVerifier('groq', 95)
        chain = VerificationChain([first, second, third], threshold=50)

        outcome = chain.verify("IU", "Blueming", COMPLETE_LYRICS)

        assert outcome.verifier == 'openai'
        assert outcome.confidence == 80
        first.verify.assert_called_once()
        second.verify.assert_called_once()
        third.verify.assert_not_called()

    def test_threshold_must_be_exceeded(self):
        chain = VerificationChain([FakeVerifier('gemini', 50)], threshold=50)
        assert not chain.verify("IU", "Blueming", COMPLETE_LYRICS).verified

    def test_all_low_confidence_returns_unverified(self):
        chain = VerificationChain([FakeVerifier('gemini', 10), FakeVerifier('openai', 40)])

        outcome = chain.verify("IU", "Blueming", COMPLETE_LYRICS)

        assert outcome.verifier == 'none'
        assert outcome.confidence == 0
        assert not outcome.is_correct

    def test_failing_verifier_is_skipped(self):
        broken = FakeVerifier('gemini', 90, error=VerificationError("quota exhausted"))
        working = FakeVerifier('openai', 70)

        outcome = VerificationChain([broken, working]).verify("IU", "Blueming", COMPLETE_LYRICS)

        assert outcome.verifier == 'openai'

    def test_unexpected_verifier_error_is_skipped(self):
        broken = FakeVerifier('gemini', 90, error=RuntimeError("malformed reply"))
        working = FakeVerifier('openai', 80)

        outcome = VerificationChain([broken, working]).verify("IU", "Blueming", COMPLETE_LYRICS)

        assert outcome.verifier == 'openai'
        working.verify.assert_called_once()

    def test_unconfigured_verifier_is_not_called(self):
        missing = FakeVerifier('gemini', 90, configured=False)
        working = FakeVerifier('groq', 70)
        chain = VerificationChain([missing, working])

        assert chain.verify("IU", "Blueming", COMPLETE_LYRICS).verifier == 'groq'
        missing.verify.assert_not_called()
        assert chain.configured_verifiers() == ['groq']

    def test_empty_lyrics_are_never_sent(self):
        verifier = FakeVerifier('gemini', 90)
        outcome = VerificationChain([verifier]).verify("IU", "Blueming", "")

        assert not outcome.verified
        verifier.verify.assert_not_called()

    def test_no_verifiers(self):
        assert not VerificationChain([]).verify("IU", "Blueming", COMPLETE_LYRICS).verified

    def test_create_from_settings(self, settings):
        settings.verification.verifiers = ['openai', 'groq']
        settings.verification.confidence_threshold = 60

        chain = create_verification_chain(settings)

        assert [v.name for v in chain.verifiers] == ['openai', 'groq']
        assert chain.threshold == 60
        assert chain.configured_verifiers() == []


class TestLLMVerifier:
    """Test prompt building and reply parsing"""

    @pytest.fixture
    def client(self):
        return Mock()

    @pytest.fixture
    def verifier(self, settings, client):
        return LLMVerifier('gemini', settings, client=client)

    def test_parses_json_reply(self, verifier, client):
        client.complete.return_value = (
            '```json\n{"knownSong": true, "lyricsMatch": true, "isComplete": false, '
            '"confidence": 85, "isAIText": false, "expectedOpening": "Hey there"}\n```'
        )

        outcome = verifier.verify("IU", "Blueming", COMPLETE_LYRICS)

        assert outcome.known_song
        assert outcome.lyrics_match
        assert not outcome.is_complete
        assert outcome.confidence == 85
        assert outcome.expected_opening == "Hey there"
        assert outcome.verifier == 'gemini'
        assert outcome.is_correct

    def test_sends_only_a_sample(self, verifier, client, settings):
        client.complete.return_value = '{"confidence": 10}'

        verifier.verify("IU", "Blueming", COMPLETE_LYRICS)

        prompt = client.complete.call_args[0][1]
        assert COMPLETE_LYRICS[:settings.verification.sample_chars] in prompt
        assert COMPLETE_LYRICS not in prompt
        assert '"Blueming" by "IU"' in prompt

    def test_loose_field_types(self, verifier):
        outcome = verifier.parse_reply('{"knownSong": "yes", "lyricsMatch": "false", "confidence": "150"}')

        assert outcome.known_song
        assert not outcome.lyrics_match
        assert outcome.confidence == 100

    def test_out_of_range_confidence(self, verifier):
        assert verifier.parse_reply('{"confidence": 1e999}').confidence == 0
        assert verifier.parse_reply('{"confidence": -5}').confidence == 0

    def test_non_json_reply_falls_back(self, verifier):
        outcome = verifier.parse_reply("I cannot verify lyrics, please search a lyrics site")

        assert outcome.confidence == 0
        assert outcome.is_ai_text
        assert not outcome.is_correct

    def test_non_json_reply_without_refusal_words(self, verifier):
        outcome = verifier.parse_reply("These look right to me")
        assert not outcome.is_ai_text

    def test_client_failure_raises_verification_error(self, verifier, client):
        client.complete.side_effect = ProviderError("HTTP 500")

        with pytest.raises(VerificationError):
            verifier.verify("IU", "Blueming", COMPLETE_LYRICS)

    def test_network_failure_raises_verification_error(self, verifier, client):
        client.complete.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(VerificationError):
            verifier.verify("IU", "Blueming", COMPLETE_LYRICS)

    def test_configured_without_credentials_only_when_client_injected(self, settings):
        assert LLMVerifier('gemini', settings, client=Mock()).is_configured()
        assert not LLMVerifier('gemini', settings).is_configured()
