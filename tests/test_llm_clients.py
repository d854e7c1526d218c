# tests/test_llm_clients.py
"""Test vendor wire formats and status mapping of the generative-model clients"""

from unittest.mock import Mock

import pytest

from lyrics_resolver.llm import (
    AnthropicClient,
    GeminiClient,
    GroqClient,
    OpenAIClient,
    PerplexityClient,
    create_llm_client,
)
from lyrics_resolver.utils.exceptions import ConfigError, FailureReason, ProviderError, RateLimitedError


def _session(status_code=200, json_data=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    session = Mock()
    session.post.return_value = response
    return session


OPENAI_REPLY = {'choices': [{'message': {'content': '{"hasLyrics": false}'}}]}


class TestOpenAIClient:
    """Test the chat-completions format"""

    def test_payload_and_reply(self):
        session = _session(json_data=OPENAI_REPLY)
        client = OpenAIClient("sk-test", "gpt-4o", "gpt-4o-mini", session=session)

        reply = client.complete("system text", "user text")

        assert reply == '{"hasLyrics": false}'
        args, kwargs = session.post.call_args
        assert args[0] == OpenAIClient.url
        assert kwargs['json']['model'] == "gpt-4o"
        assert kwargs['json']['messages'][0] == {'role': 'system', 'content': 'system text'}
        assert kwargs['json']['response_format'] == {'type': 'json_object'}
        assert kwargs['headers']['Authorization'] == "Bearer sk-test"

    def test_fallback_model(self):
        session = _session(json_data=OPENAI_REPLY)
        client = OpenAIClient("sk-test", "gpt-4o", "gpt-4o-mini", session=session)

        client.complete("s", "p", use_fallback=True)

        assert session.post.call_args.kwargs['json']['model'] == "gpt-4o-mini"

    def test_fallback_defaults_to_primary(self):
        client = OpenAIClient("sk-test", "gpt-4o", session=_session(json_data=OPENAI_REPLY))
        assert client.fallback_model == "gpt-4o"

    @pytest.mark.parametrize("status", [429, 400])
    def test_rate_limit_statuses(self, status):
        client = OpenAIClient("sk-test", "gpt-4o", session=_session(status))

        with pytest.raises(RateLimitedError) as exc_info:
            client.complete("s", "p")
        assert exc_info.value.status_code == status

    def test_other_http_error(self):
        client = OpenAIClient("sk-test", "gpt-4o", session=_session(500))

        with pytest.raises(ProviderError) as exc_info:
            client.complete("s", "p")
        assert exc_info.value.reason == FailureReason.HTTP_ERROR

    def test_non_json_body(self):
        client = OpenAIClient("sk-test", "gpt-4o", session=_session(json_error=ValueError("bad")))

        with pytest.raises(ProviderError) as exc_info:
            client.complete("s", "p")
        assert exc_info.value.reason == FailureReason.INVALID_CONTENT

    def test_missing_fields(self):
        client = OpenAIClient("sk-test", "gpt-4o", session=_session(json_data={'choices': []}))

        with pytest.raises(ProviderError) as exc_info:
            client.complete("s", "p")
        assert exc_info.value.reason == FailureReason.INVALID_CONTENT

    def test_compatible_vendors(self):
        session = _session(json_data=OPENAI_REPLY)

        GroqClient("gsk", "llama", session=session).complete("s", "p")
        assert session.post.call_args.args[0] == GroqClient.url

        PerplexityClient("pplx", "sonar", session=session).complete("s", "p")
        assert 'response_format' not in session.post.call_args.kwargs['json']


class TestAnthropicClient:
    """Test the messages API format"""

    def test_payload_and_reply(self):
        session = _session(json_data={'content': [
            {'type': 'text', 'text': 'first '},
            {'type': 'tool_use', 'id': 'x'},
            {'type': 'text', 'text': 'second'},
        ]})
        client = AnthropicClient("sk-ant", "claude-3-5-sonnet-latest", session=session)

        reply = client.complete("system text", "user text")

        assert reply == "first second"
        kwargs = session.post.call_args.kwargs
        assert kwargs['json']['system'] == "system text"
        assert kwargs['headers']['x-api-key'] == "sk-ant"
        assert kwargs['headers']['anthropic-version'] == AnthropicClient.api_version


class TestGeminiClient:
    """Test the generateContent format"""

    def test_payload_and_reply(self):
        session = _session(json_data={
            'candidates': [{'content': {'parts': [{'text': '{"knownSong": true}'}]}}]
        })
        client = GeminiClient("goog", "gemini-2.0-flash", "gemini-1.5-flash", session=session)

        reply = client.complete("system text", "user text", use_fallback=True)

        assert reply == '{"knownSong": true}'
        args, kwargs = session.post.call_args
        assert args[0].endswith("/models/gemini-1.5-flash:generateContent")
        assert kwargs['params'] == {'key': 'goog'}
        assert kwargs['json']['generationConfig']['responseMimeType'] == 'application/json'

    def test_no_candidates(self):
        client = GeminiClient("goog", "gemini-2.0-flash", session=_session(json_data={'candidates': []}))

        with pytest.raises(ProviderError):
            client.complete("s", "p")


class TestCreateClient:
    """Test building clients from settings"""

    def test_builds_from_settings(self, settings):
        settings.providers.anthropic_api_key = "sk-ant"

        client = create_llm_client('claude', settings)

        assert isinstance(client, AnthropicClient)
        assert client.api_key == "sk-ant"
        assert client.model == settings.llm.anthropic_model
        assert client.fallback_model == settings.llm.anthropic_fallback_model
        assert client.timeout == settings.network.llm_timeout

    def test_timeout_override(self, settings):
        assert create_llm_client('gemini', settings, timeout=5).timeout == 5

    def test_unknown_vendor(self, settings):
        with pytest.raises(ConfigError):
            create_llm_client('mistral', settings)
