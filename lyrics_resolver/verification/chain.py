"""
Verification chain

Verifiers are tried one after another in a fixed order. The first outcome
whose confidence exceeds the threshold is returned and the remaining
verifiers are never called. When every verifier fails, is unconfigured or
answers with low confidence, the default unverified outcome is returned.
Verification is advisory: it never raises and never blocks a result.
"""

from typing import List, Optional, Sequence

from ..config.settings import get_settings, Settings
from ..lyrics.models import VerificationOutcome
from ..utils.exceptions import VerificationError
from ..utils.logger import get_logger
from .verifiers import LLMVerifier


class VerificationChain:
    """
    Sequential short-circuit over verifiers

    Attributes:
        verifiers: Verifiers in priority order
        threshold: Confidence an outcome must exceed to be accepted
    """

    def __init__(self, verifiers: Sequence[LLMVerifier], threshold: int = 50):
        self.verifiers = list(verifiers)
        self.threshold = threshold
        self.logger = get_logger(__name__)

    def verify(self, artist: str, title: str, lyrics: str) -> VerificationOutcome:
        if not lyrics:
            return VerificationOutcome.unverified()

        for verifier in self.verifiers:
            if not verifier.is_configured():
                self.logger.debug(f"Verifier {verifier.name} not configured, skipped")
                continue

            try:
                outcome = verifier.verify(artist, title, lyrics)
            except VerificationError as e:
                self.logger.info(f"Verifier {verifier.name} failed: {e.message}")
                continue
            except Exception as e:
                self.logger.warning(f"Verifier {verifier.name} raised unexpectedly: {e}")
                continue

            if outcome.confidence > self.threshold:
                self.logger.info(
                    f"Verified '{artist} - {title}' with {verifier.name} "
                    f"(confidence {outcome.confidence}, correct={outcome.is_correct})"
                )
                return outcome

            self.logger.debug(
                f"Verifier {verifier.name} below threshold ({outcome.confidence} <= {self.threshold})"
            )

        self.logger.info(f"No verifier confirmed '{artist} - {title}'")
        return VerificationOutcome.unverified()

    def configured_verifiers(self) -> List[str]:
        return [v.name for v in self.verifiers if v.is_configured()]


def create_verification_chain(settings: Optional[Settings] = None) -> VerificationChain:
    """Build the chain from the verification section of settings"""
    settings = settings or get_settings()
    verifiers = [LLMVerifier(name, settings) for name in settings.verification.verifiers]
    return VerificationChain(verifiers, threshold=settings.verification.confidence_threshold)
