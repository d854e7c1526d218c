"""
Configuration management for lyrics-resolver

This module handles loading, validation and management of engine settings
from YAML files and environment variables. The configuration is organized
into dataclass sections:
- Lyrics resolution (thresholds, deadline, tier table, enabled providers)
- Provider credentials and generative-model selection
- Cache tiers (fast in-process tier, durable SQLite tier)
- Verification chain
- Logging, network and storage locations

Credentials are only ever read from the environment (or a .env file) and
are blanked when the configuration is saved back to disk.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field, asdict
from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()


# Every provider id the engine knows about, in fan-out submission order
ALL_PROVIDERS = [
    "lrclib", "genius", "syncedlyrics", "melon", "bugs",
    "openai", "claude", "gemini", "groq", "perplexity",
]

# Verifier ids in chain order
ALL_VERIFIERS = ["gemini", "openai", "groq"]


def _default_priority_tiers() -> List[Dict[str, Any]]:
    return [
        {'match': 'genius', 'score': 100, 'requires_timestamps': False},
        {'match': 'melon', 'score': 95, 'requires_timestamps': False},
        {'match': 'lrclib', 'score': 90, 'requires_timestamps': True},
        {'match': 'syncedlyrics', 'score': 85, 'requires_timestamps': True},
        {'match': 'bugs', 'score': 70, 'requires_timestamps': False},
    ]


@dataclass
class LyricsConfig:
    """
    Resolution pipeline settings

    Controls which providers are queried, how long the fan-out may run and
    the quality thresholds used by the selector and merger.
    """
    providers: list = field(default_factory=lambda: list(ALL_PROVIDERS))
    min_length: int = 150               # Minimum viable transcript length (chars)
    min_lines: int = 5                  # Minimum non-blank lines for a valid transcript
    good_enough_score: int = 70         # Below this the top two candidates are merged
    significance_gap: int = 10          # Score gap that decides a sort level on its own
    default_priority: int = 50          # Priority for sources matching no tier
    priority_tiers: list = field(default_factory=_default_priority_tiers)
    deadline: float = 35.0              # Overall fan-out deadline in seconds
    max_workers: int = 8                # Concurrent provider calls
    similarity_threshold: float = 0.6   # Genius title/artist match threshold


@dataclass
class ProvidersConfig:
    """
    Provider credentials

    Only booleans ("is this provider configured") and ready-to-use credential
    strings leave this section. Values come from environment variables.
    """
    genius_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    groq_api_key: str = ""
    perplexity_api_key: str = ""

    def credential_for(self, provider: str) -> str:
        """Return the credential string a provider needs, empty if none"""
        mapping = {
            'genius': self.genius_api_key,
            'openai': self.openai_api_key,
            'claude': self.anthropic_api_key,
            'gemini': self.google_api_key,
            'groq': self.groq_api_key,
            'perplexity': self.perplexity_api_key,
        }
        return mapping.get(provider, "")

    def is_configured(self, provider: str) -> bool:
        """Keyless providers are always configured"""
        if provider in ('lrclib', 'syncedlyrics', 'melon', 'bugs'):
            return True
        return bool(self.credential_for(provider))


@dataclass
class LLMConfig:
    """
    Generative-model selection

    Each vendor has a primary model and a fallback model used for the single
    retry after a 429/400 response.
    """
    openai_model: str = "gpt-4o"
    openai_fallback_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-3-5-sonnet-latest"
    anthropic_fallback_model: str = "claude-3-5-haiku-latest"
    gemini_model: str = "gemini-2.0-flash"
    gemini_fallback_model: str = "gemini-1.5-flash"
    groq_model: str = "llama-3.3-70b-versatile"
    groq_fallback_model: str = "llama-3.1-8b-instant"
    perplexity_model: str = "sonar-pro"
    perplexity_fallback_model: str = "sonar"
    temperature: float = 0.1
    max_tokens: int = 4000


@dataclass
class CacheConfig:
    """
    Two-tier cache settings

    The fast tier is an in-process LRU with per-entry TTL. The durable tier
    is an SQLite file, or nothing when durable_backend is "none".
    """
    enabled: bool = True
    capacity: int = 200
    ttl: int = 600                      # 10 minutes
    durable_backend: str = "sqlite"     # sqlite, none
    durable_path: str = "~/.lyrics-resolver/cache.db"
    durable_ttl: int = 2592000          # 30 days


@dataclass
class VerificationConfig:
    """Verification chain settings"""
    enabled: bool = False
    verifiers: list = field(default_factory=lambda: list(ALL_VERIFIERS))
    confidence_threshold: int = 50
    sample_chars: int = 500
    timeout: int = 20


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls log level, optional rotating file output and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings

    Timeouts are per provider call. Generative-model calls get a longer
    budget because they routinely take tens of seconds.
    """
    user_agent: str = "lyrics-resolver/1.0 (+https://github.com/lyrics-resolver)"
    browser_user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    request_timeout: int = 8
    llm_timeout: int = 25
    rate_limit_backoff: float = 0.6


@dataclass
class SecurityConfig:
    """Storage locations for configuration and cache files"""
    config_directory: str = "~/.lyrics-resolver/"


class Settings:
    """
    Main settings class that manages all configuration

    Loads settings from YAML files and environment variables and provides a
    single object for the rest of the engine. Sections are plain dataclasses
    so they can be overridden in tests by assignment.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".lyrics-resolver"
        self.loaded_from: Optional[Path] = None

        self.lyrics = LyricsConfig()
        self.providers = ProvidersConfig()
        self.llm = LLMConfig()
        self.cache = CacheConfig()
        self.verification = VerificationConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.security = SecurityConfig()

        self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'lyrics': self.lyrics,
            'providers': self.providers,
            'llm': self.llm,
            'cache': self.cache,
            'verification': self.verification,
            'logging': self.logging,
            'network': self.network,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        The first existing file among the explicit path, the user config
        directory, config/config.yaml and config.yaml is used.
        """
        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    self.loaded_from = Path(path)
                    break
                except (OSError, yaml.YAMLError) as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only keys that exist on the target dataclass are applied; unknown
        sections and keys are ignored. Credentials are never read from files.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name == 'providers':
                continue
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load credentials and a few overrides from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'GENIUS_API_KEY': lambda v: setattr(self.providers, 'genius_api_key', v),
            'OPENAI_API_KEY': lambda v: setattr(self.providers, 'openai_api_key', v),
            'ANTHROPIC_API_KEY': lambda v: setattr(self.providers, 'anthropic_api_key', v),
            'GOOGLE_API_KEY': lambda v: setattr(self.providers, 'google_api_key', v),
            'GROQ_API_KEY': lambda v: setattr(self.providers, 'groq_api_key', v),
            'PERPLEXITY_API_KEY': lambda v: setattr(self.providers, 'perplexity_api_key', v),
            'LYRICS_RESOLVER_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
            'LYRICS_RESOLVER_CACHE_PATH': lambda v: setattr(self.cache, 'durable_path', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        """Return the expanded configuration directory path"""
        return Path(self.security.config_directory).expanduser()

    def get_durable_cache_path(self) -> Path:
        """Return the expanded SQLite cache file path"""
        return Path(self.cache.durable_path).expanduser()

    def enabled_providers(self) -> List[str]:
        """Providers listed in configuration that also have credentials"""
        return [p for p in self.lyrics.providers if self.providers.is_configured(p)]

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to file

        Serializes the configuration to YAML, leaving out all credentials.

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If the configuration cannot be saved
        """
        from ..utils.exceptions import ConfigError

        target = Path(path) if path else self.get_config_directory() / "config.yaml"

        config_data = {
            name: asdict(section)
            for name, section in self._sections().items()
            if name != 'providers'
        }

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2, allow_unicode=True)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {target}: {e}", details={'path': str(target)}) from e

        return target

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate current configuration

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        unknown = [p for p in self.lyrics.providers if p not in ALL_PROVIDERS]
        if unknown:
            errors.append(f"Unknown providers: {', '.join(unknown)}")

        if not self.enabled_providers():
            errors.append("No configured lyrics providers")

        if not 0 <= self.lyrics.good_enough_score <= 100:
            errors.append(f"good_enough_score must be within 0-100: {self.lyrics.good_enough_score}")

        if self.lyrics.deadline <= 0:
            errors.append(f"deadline must be positive: {self.lyrics.deadline}")

        if self.lyrics.max_workers < 1:
            errors.append(f"max_workers must be at least 1: {self.lyrics.max_workers}")

        for tier in self.lyrics.priority_tiers:
            if not isinstance(tier, dict) or 'match' not in tier or 'score' not in tier:
                errors.append(f"Invalid priority tier: {tier}")

        if self.cache.capacity < 1:
            errors.append(f"Cache capacity must be at least 1: {self.cache.capacity}")

        if self.cache.ttl <= 0:
            errors.append(f"Cache TTL must be positive: {self.cache.ttl}")

        if self.cache.durable_backend not in ('sqlite', 'none'):
            errors.append(f"Invalid durable cache backend: {self.cache.durable_backend}")

        unknown_verifiers = [v for v in self.verification.verifiers if v not in ALL_VERIFIERS]
        if unknown_verifiers:
            errors.append(f"Unknown verifiers: {', '.join(unknown_verifiers)}")

        if not 0 <= self.verification.confidence_threshold <= 100:
            errors.append(
                f"Verification threshold must be within 0-100: {self.verification.confidence_threshold}"
            )

        return len(errors) == 0, errors

    def __str__(self) -> str:
        sections = [
            f"Providers: {', '.join(self.enabled_providers()) or 'none'}",
            f"Deadline: {self.lyrics.deadline}s",
            f"Cache: {self.cache.capacity}x{self.cache.ttl}s/{self.cache.durable_backend}",
            f"Verification: {'enabled' if self.verification.enabled else 'disabled'}",
        ]
        return f"Settings({', '.join(sections)})"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    Builds the instance on first access so importing the package has no
    file system side effects.

    Returns:
        The global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
