"""
Verification package
Generative-model verifiers and the short-circuit chain that runs them
"""

from .verifiers import LLMVerifier
from .chain import VerificationChain, create_verification_chain

__all__ = [
    'LLMVerifier',
    'VerificationChain',
    'create_verification_chain',
]
