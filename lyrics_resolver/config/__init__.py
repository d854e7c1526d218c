"""
Configuration package for lyrics-resolver

Exposes the settings singleton accessors and the Settings class. The
usual pattern throughout the engine is:

    from ..config import get_settings

    settings = get_settings()

Sources in order of precedence:
1. Environment variables (credentials, log level, cache path)
2. YAML configuration files
3. Dataclass defaults
"""

from .settings import get_settings, reload_settings, Settings, ALL_PROVIDERS, ALL_VERIFIERS

__all__ = [
    'get_settings',      # Lazily built process-wide settings
    'reload_settings',   # Rebuild settings from a specific file
    'Settings',          # Settings class for direct instantiation
    'ALL_PROVIDERS',     # Known provider ids
    'ALL_VERIFIERS',     # Known verifier ids
]
