"""
Thin HTTP clients for generative-model vendors

One small class per vendor wire format, all with the same call:

    client = create_llm_client('openai', settings)
    reply = client.complete(system_prompt, user_prompt)

OpenAI, Groq and Perplexity share the OpenAI chat-completions format;
Anthropic and Gemini have their own. Clients only move text: prompt
construction and reply parsing belong to the lyrics providers and the
verifiers that use them.

Status mapping:
- 429 and 400 raise RateLimitedError. Vendors answer 400 for a model that
  is overloaded or unavailable to the key, so both trigger the single
  retry on the fallback model.
- Any other status >= 400 raises ProviderError(HTTP_ERROR).
- A 2xx body without the expected fields raises ProviderError(INVALID_CONTENT).
"""

from typing import Any, Dict, Optional

import requests

from ..config.settings import get_settings, Settings
from ..utils.exceptions import ConfigError, FailureReason, ProviderError, RateLimitedError
from ..utils.logger import get_logger


class LLMClient:
    """
    Base class for vendor clients

    Attributes:
        name: Vendor id used in logs
        api_key: Vendor credential
        model: Primary model
        fallback_model: Model used when use_fallback is requested
        timeout: Request timeout in seconds
    """

    name = "llm"

    def __init__(
        self,
        api_key: str,
        model: str,
        fallback_model: Optional[str] = None,
        timeout: float = 25,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.model = model
        self.fallback_model = fallback_model or model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.session = session or requests.Session()
        self.logger = get_logger(__name__)

    def complete(self, system: str, prompt: str, json_mode: bool = True, use_fallback: bool = False) -> str:
        """
        Send one system + user prompt pair and return the reply text

        Args:
            system: System instructions
            prompt: User message
            json_mode: Ask the vendor for a JSON object reply where supported
            use_fallback: Use the fallback model instead of the primary one

        Raises:
            RateLimitedError: On 429/400
            ProviderError: On other HTTP errors or a malformed reply
            requests.RequestException: On transport failures
        """
        model = self.fallback_model if use_fallback else self.model
        self.logger.debug(f"{self.name} completion with {model}")
        return self._complete(model, system, prompt, json_mode)

    def _complete(self, model: str, system: str, prompt: str, json_mode: bool) -> str:
        raise NotImplementedError

    def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None,
              params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        response = self.session.post(url, json=payload, headers=headers, params=params, timeout=self.timeout)

        if response.status_code in (429, 400):
            raise RateLimitedError(
                f"{self.name} answered HTTP {response.status_code}",
                status_code=response.status_code,
                details={'model': payload.get('model')}
            )
        if response.status_code >= 400:
            raise ProviderError(
                f"{self.name} answered HTTP {response.status_code}",
                FailureReason.HTTP_ERROR,
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} returned a non-JSON body", FailureReason.INVALID_CONTENT) from e

    def _malformed(self, error: Exception) -> ProviderError:
        return ProviderError(
            f"{self.name} reply is missing expected fields: {error}",
            FailureReason.INVALID_CONTENT
        )


class OpenAIClient(LLMClient):
    """OpenAI chat-completions client"""

    name = "openai"
    url = "https://api.openai.com/v1/chat/completions"
    supports_json_mode = True

    def _complete(self, model: str, system: str, prompt: str, json_mode: bool) -> str:
        payload = {
            'model': model,
            'messages': [
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': prompt},
            ],
            'temperature': self.temperature,
            'max_tokens': self.max_tokens,
        }
        if json_mode and self.supports_json_mode:
            payload['response_format'] = {'type': 'json_object'}

        data = self._post(self.url, payload, headers={'Authorization': f"Bearer {self.api_key}"})
        try:
            return data['choices'][0]['message']['content'] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise self._malformed(e) from e


class GroqClient(OpenAIClient):
    """Groq client (OpenAI-compatible)"""

    name = "groq"
    url = "https://api.groq.com/openai/v1/chat/completions"


class PerplexityClient(OpenAIClient):
    """Perplexity client (OpenAI-compatible, no JSON mode)"""

    name = "perplexity"
    url = "https://api.perplexity.ai/chat/completions"
    supports_json_mode = False


class AnthropicClient(LLMClient):
    """Anthropic messages API client"""

    name = "anthropic"
    url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"

    def _complete(self, model: str, system: str, prompt: str, json_mode: bool) -> str:
        payload = {
            'model': model,
            'max_tokens': self.max_tokens,
            'temperature': self.temperature,
            'system': system,
            'messages': [{'role': 'user', 'content': prompt}],
        }
        headers = {
            'x-api-key': self.api_key,
            'anthropic-version': self.api_version,
        }

        data = self._post(self.url, payload, headers=headers)
        try:
            return ''.join(block.get('text', '') for block in data['content'] if block.get('type') == 'text')
        except (KeyError, TypeError, AttributeError) as e:
            raise self._malformed(e) from e


class GeminiClient(LLMClient):
    """Google Gemini generateContent client"""

    name = "gemini"
    url = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def _complete(self, model: str, system: str, prompt: str, json_mode: bool) -> str:
        generation_config = {
            'temperature': self.temperature,
            'maxOutputTokens': self.max_tokens,
        }
        if json_mode:
            generation_config['responseMimeType'] = 'application/json'

        payload = {
            'systemInstruction': {'parts': [{'text': system}]},
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'generationConfig': generation_config,
        }

        data = self._post(self.url.format(model=model), payload, params={'key': self.api_key})
        try:
            parts = data['candidates'][0]['content']['parts']
            return ''.join(part.get('text', '') for part in parts)
        except (KeyError, IndexError, TypeError) as e:
            raise self._malformed(e) from e


# Vendor id -> (client class, credential provider id, LLMConfig attribute prefix)
CLIENTS = {
    'openai': (OpenAIClient, 'openai', 'openai'),
    'claude': (AnthropicClient, 'claude', 'anthropic'),
    'anthropic': (AnthropicClient, 'claude', 'anthropic'),
    'gemini': (GeminiClient, 'gemini', 'gemini'),
    'groq': (GroqClient, 'groq', 'groq'),
    'perplexity': (PerplexityClient, 'perplexity', 'perplexity'),
}


def create_llm_client(
    name: str,
    settings: Optional[Settings] = None,
    timeout: Optional[float] = None
) -> LLMClient:
    """
    Build a vendor client from settings

    Args:
        name: Vendor or provider id (openai, claude/anthropic, gemini, groq, perplexity)
        settings: Settings instance, the global one if None
        timeout: Request timeout, network.llm_timeout if None

    Raises:
        ConfigError: For an unknown vendor id
    """
    if name not in CLIENTS:
        raise ConfigError(f"Unknown generative-model vendor: {name}", details={'name': name})

    settings = settings or get_settings()
    client_class, credential_id, prefix = CLIENTS[name]

    return client_class(
        api_key=settings.providers.credential_for(credential_id),
        model=getattr(settings.llm, f"{prefix}_model"),
        fallback_model=getattr(settings.llm, f"{prefix}_fallback_model"),
        timeout=timeout if timeout is not None else settings.network.llm_timeout,
        temperature=settings.llm.temperature,
        max_tokens=settings.llm.max_tokens,
    )
