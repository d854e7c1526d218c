"""
Input validation utilities
"""
from typing import Optional, List, Tuple

from ..config.settings import ALL_PROVIDERS


def validate_query(artist: str, title: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an (artist, title) pair before resolution

    Args:
        artist: Artist name
        title: Song title

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not artist or not artist.strip():
        return False, "Artist cannot be empty"

    if not title or not title.strip():
        return False, "Title cannot be empty"

    if len(artist) > 200 or len(title) > 300:
        return False, "Artist or title is too long"

    return True, None


def validate_provider_names(names: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate provider ids given on the command line or in config

    Returns:
        Tuple of (is_valid, error_message)
    """
    unknown = [name for name in names if name not in ALL_PROVIDERS]
    if unknown:
        return False, f"Unknown providers: {', '.join(unknown)} (known: {', '.join(ALL_PROVIDERS)})"
    return True, None


def validate_deadline(deadline: Optional[float]) -> Tuple[bool, Optional[str]]:
    """
    Validate a caller-supplied resolution deadline in seconds

    Returns:
        Tuple of (is_valid, error_message)
    """
    if deadline is None:
        return True, None
    if deadline <= 0:
        return False, "Deadline must be a positive number of seconds"
    if deadline > 300:
        return False, "Deadline cannot exceed 300 seconds"
    return True, None
