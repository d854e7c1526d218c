"""
Utility functions for lyrics-resolver
Text normalization, transcript formatting, HTML and JSON extraction helpers
"""

import functools
import json
import re
import time
from typing import Optional, List, Dict, Any, Tuple, Type

from bs4 import BeautifulSoup, Comment


# Separator between normalized artist and title in cache keys
CACHE_KEY_SEPARATOR = "::"

LRC_TIMESTAMP_PATTERN = re.compile(r'^\s*\[\d{1,2}:\d{2}(?:[.:]\d{1,3})?\]', re.MULTILINE)

SECOND_VERSE_MARKERS = ('2절', 'Verse 2', '[Verse 2]', '두 번째')


def normalize_whitespace(text: str) -> str:
    """Trim and collapse every run of whitespace to a single space"""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def normalize_query_part(text: str) -> str:
    """
    Normalize an artist or title for identity comparison

    Args:
        text: Raw artist or title

    Returns:
        Trimmed, whitespace-collapsed, lower-cased text
    """
    return normalize_whitespace(text).lower()


def make_cache_key(artist: str, title: str) -> str:
    """
    Build the cache key for an (artist, title) pair

    The same normalization is applied on every read and write, so
    "  IU " / "Blueming" and "iu" / "blueming" share one entry.
    """
    return f"{normalize_query_part(artist)}{CACHE_KEY_SEPARATOR}{normalize_query_part(title)}"


def calculate_similarity(str1: str, str2: str) -> float:
    """
    Calculate string similarity using Levenshtein distance

    Args:
        str1: First string
        str2: Second string

    Returns:
        Similarity score between 0.0 and 1.0
    """
    if not str1 or not str2:
        return 0.0

    s1 = str1.lower().strip()
    s2 = str2.lower().strip()

    if s1 == s2:
        return 1.0

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, 1):
        current = [i]
        for j, c2 in enumerate(s2, 1):
            current.append(min(
                previous[j] + 1,                # deletion
                current[j - 1] + 1,             # insertion
                previous[j - 1] + (c1 != c2)    # substitution
            ))
        previous = current

    max_len = max(len(s1), len(s2))
    return max(0.0, 1 - (previous[-1] / max_len))


def normalize_artist_name(artist: str) -> str:
    """
    Normalize artist name for fuzzy matching

    Args:
        artist: Original artist name

    Returns:
        Lower-cased name without leading article or featuring credits
    """
    normalized = artist.lower()

    for prefix in ('the ', 'a ', 'an '):
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]

    feat_patterns = [
        r'\s*\(feat\.?.*?\)',
        r'\s*\(ft\.?.*?\)',
        r'\s+feat\.?\s.*',
        r'\s+ft\.?\s.*',
        r'\s+featuring\s.*',
    ]
    for pattern in feat_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    return normalize_whitespace(normalized)


def normalize_track_title(title: str) -> str:
    """
    Normalize track title for fuzzy matching

    Args:
        title: Original track title

    Returns:
        Lower-cased title without version qualifiers or featuring credits
    """
    normalized = title.lower()

    version_patterns = [
        r'\s*[\(\[][^\)\]]*(?:version|mix|edit|remaster|live|ver\.)[^\)\]]*[\)\]]',
        r'\s*\(feat\.?.*?\)',
        r'\s*\(ft\.?.*?\)',
        r'\s+feat\.?\s.*',
        r'\s+ft\.?\s.*',
    ]
    for pattern in version_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    return normalize_whitespace(normalized)


def generate_title_variants(title: str) -> List[str]:
    """
    Generate alternative spellings of a title for providers with strict matching

    Order: original, without bracketed qualifiers, without featuring credits,
    left part of "A - B" titles. Duplicates and empty variants are dropped.

    Args:
        title: Original title

    Returns:
        Ordered list of distinct variants, original first
    """
    base = normalize_whitespace(title)
    candidates = [
        base,
        re.sub(r'\s*[\(\[][^\)\]]*[\)\]]', '', base),
        re.sub(r'\s+(?:feat\.?|ft\.?|featuring)\s.*$', '', base, flags=re.IGNORECASE),
        base.split(' - ')[0],
    ]

    variants: List[str] = []
    seen = set()
    for candidate in candidates:
        candidate = normalize_whitespace(candidate)
        key = candidate.lower()
        if candidate and key not in seen:
            seen.add(key)
            variants.append(candidate)
    return variants


def format_lyrics(lyrics: str) -> str:
    """
    Normalize transcript whitespace without touching its words

    Unifies line endings, turns tabs into two spaces and non-breaking spaces
    into spaces, strips trailing whitespace per line, collapses runs of blank
    lines to a single blank line and trims the whole text.

    Args:
        lyrics: Raw transcript

    Returns:
        Formatted transcript ("" for empty input)
    """
    if not lyrics:
        return ""

    text = lyrics.replace('\r\n', '\n').replace('\r', '\n')
    text = text.replace('\t', '  ').replace('\u00a0', ' ')
    text = '\n'.join(line.rstrip() for line in text.split('\n'))
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def strip_genius_artifacts(lyrics: str) -> str:
    """
    Remove page chrome that lyricsgenius leaves around scraped lyrics

    Drops the "N Contributors...Lyrics" header line, "You might also like"
    inserts and the trailing "123Embed" marker. Section headers such as
    [Verse 1] are kept because the completeness scorer relies on them.
    """
    if not lyrics:
        return ""

    lines = lyrics.split('\n')
    first = lines[0].strip()
    header = re.match(r'^(?:\d+\s*Contributors?.*?Lyrics|.*\sLyrics$)', first)
    if header and not first.startswith('['):
        # Header and first section marker are sometimes glued together
        rest = first[header.end():].strip()
        lines = ([rest] if rest else []) + lines[1:]

    text = '\n'.join(lines)
    text = re.sub(r'You might also like', '', text)
    text = re.sub(r'\d*Embed\s*$', '', text.rstrip())
    return text


def has_lrc_timestamps(lyrics: str) -> bool:
    """True when the text contains LRC line timestamps like [01:23.45]"""
    return bool(lyrics and LRC_TIMESTAMP_PATTERN.search(lyrics))


def extract_text_from_html(html: str) -> str:
    """
    Extract visible text from an HTML fragment, keeping line breaks

    <br>, </p> and </div> become newlines; scripts, styles and comments are
    dropped; entities are decoded by BeautifulSoup. Each line is trimmed and
    blank lines are removed.

    Args:
        html: HTML fragment or document

    Returns:
        Plain text with one lyric line per text line
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(['script', 'style']):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for br in soup.find_all('br'):
        br.replace_with('\n')
    for block in soup.find_all(['p', 'div']):
        block.append('\n')

    lines = [line.strip() for line in soup.get_text().split('\n')]
    return '\n'.join(line for line in lines if line)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the first JSON object found in a model reply

    Accepts bare JSON, JSON wrapped in ``` fences, or JSON preceded by prose.

    Returns:
        Parsed dictionary, or None when no object can be decoded
    """
    if not text:
        return None

    cleaned = re.sub(r'^```(?:json)?\s*|\s*```$', '', text.strip())
    try:
        parsed = json.loads(cleaned)
        return parsed if isinstance(parsed, dict) else None
    except ValueError:
        pass

    start = cleaned.find('{')
    end = cleaned.rfind('}')
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(cleaned[start:end + 1])
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def detect_language(text: str) -> str:
    """
    Detect the dominant script of a transcript

    Returns:
        'ko', 'ja', 'zh' or 'en' when that script covers more than a quarter
        of all characters, otherwise 'unknown'
    """
    if not text:
        return 'unknown'

    total = len(text)
    counts = [
        ('ko', len(re.findall(r'[\uAC00-\uD7AF\u1100-\u11FF\u3130-\u318F]', text))),
        ('ja', len(re.findall(r'[\u3040-\u309F\u30A0-\u30FF]', text))),
        ('zh', len(re.findall(r'[\u4E00-\u9FFF]', text))),
        ('en', len(re.findall(r'[A-Za-z]', text))),
    ]
    language, count = max(counts, key=lambda item: item[1])
    return language if count / total > 0.25 else 'unknown'


def is_only_first_verse(lyrics: str) -> bool:
    """
    Check whether a transcript looks like the first verse only

    True when there is no second-verse marker, at most 3 paragraphs of
    more than 20 characters, fewer than 500 characters and fewer than
    15 non-blank lines.
    """
    if not lyrics:
        return True

    has_second_verse = any(marker in lyrics for marker in SECOND_VERSE_MARKERS)
    paragraphs = [p for p in lyrics.split('\n\n') if len(p.strip()) > 20]
    lines = [line for line in lyrics.split('\n') if line.strip()]

    return (
        not has_second_verse
        and len(paragraphs) <= 3
        and len(lyrics) < 500
        and len(lines) < 15
    )


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Original text
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    truncate_length = max_length - len(suffix)
    if truncate_length <= 0:
        return suffix[:max_length]

    return text[:truncate_length] + suffix


def parse_track_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse an "Artist - Title" line from a batch file

    Returns:
        (artist, title) tuple, or None for blank, comment or malformed lines
    """
    line = line.strip()
    if not line or line.startswith('#') or ' - ' not in line:
        return None
    artist, title = line.split(' - ', 1)
    artist, title = artist.strip(), title.strip()
    if not artist or not title:
        return None
    return artist, title


def retry_on_failure(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)
):
    """
    Decorator for retrying functions on failure

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay between attempts
        backoff: Delay multiplier for exponential backoff
        exceptions: Exception types that trigger a retry; others propagate at once
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 1
            current_delay = delay

            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions:
                    if attempt >= max_attempts:
                        raise

                    time.sleep(current_delay)
                    current_delay *= backoff
                    attempt += 1
        return wrapper
    return decorator
