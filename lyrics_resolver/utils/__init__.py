# lyrics_resolver/utils/__init__.py
"""
Utilities package
Logging, exceptions, text helpers and input validation
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    OperationLogger,
    create_operation_logger,
    log_performance,
    get_current_log_file
)
from .helpers import (
    normalize_query_part,
    make_cache_key,
    calculate_similarity,
    normalize_artist_name,
    normalize_track_title,
    generate_title_variants,
    format_lyrics,
    detect_language,
    is_only_first_verse,
    extract_text_from_html,
    extract_json_object,
    retry_on_failure
)
from .exceptions import (
    LyricsResolverError,
    ConfigError,
    InvalidQueryError,
    ProviderError,
    RateLimitedError,
    CacheUnavailableError,
    VerificationError,
    FailureReason
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'OperationLogger',
    'create_operation_logger',
    'log_performance',
    'get_current_log_file',

    # Helper exports
    'normalize_query_part',
    'make_cache_key',
    'calculate_similarity',
    'normalize_artist_name',
    'normalize_track_title',
    'generate_title_variants',
    'format_lyrics',
    'detect_language',
    'is_only_first_verse',
    'extract_text_from_html',
    'extract_json_object',
    'retry_on_failure',

    # Exception exports
    'LyricsResolverError',
    'ConfigError',
    'InvalidQueryError',
    'ProviderError',
    'RateLimitedError',
    'CacheUnavailableError',
    'VerificationError',
    'FailureReason',
]
