"""
Generative-model vendor clients
Shared by the recollection lyrics providers and the verification chain
"""

from .clients import (
    LLMClient,
    OpenAIClient,
    GroqClient,
    PerplexityClient,
    AnthropicClient,
    GeminiClient,
    create_llm_client
)

__all__ = [
    'LLMClient',
    'OpenAIClient',
    'GroqClient',
    'PerplexityClient',
    'AnthropicClient',
    'GeminiClient',
    'create_llm_client',
]
