"""
Main CLI interface for lyrics-resolver

Command-line access to the resolution engine for lookups, verification,
batch runs, cache maintenance, configuration and diagnostics.

The CLI is built using Click framework and provides:
- resolve / verify / batch for lyrics lookups
- lyrics sources for provider status
- cache stats / cache clear / cache purge for the two-tier cache
- config show / config set for settings
- doctor for system diagnostics
"""

import json
import sys
import click
import functools
from pathlib import Path

from . import __version__
from .config.settings import get_settings, reload_settings, ALL_PROVIDERS
from .lyrics.coordinator import build_providers
from .lyrics.models import NotFound, Query, ResolutionResult, VerificationOutcome
from .lyrics.processor import LyricsResolver, get_lyrics_resolver
from .utils.exceptions import InvalidQueryError
from .utils.helpers import parse_track_line, truncate_string
from .utils.logger import configure_from_settings, get_logger, get_current_log_file, OperationLogger
from .utils.validation import validate_query, validate_deadline


logger = get_logger(__name__)


def print_banner():
    """Print application banner to console"""
    banner = """
+---------------------------------------------------------------+
|                        lyrics-resolver                        |
|                                                               |
|   Complete lyrics from many sources, scored and merged        |
+---------------------------------------------------------------+
    """
    click.echo(click.style(banner, fg='cyan', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Catches exceptions escaping a command, logs them and exits with a
    non-zero status. Ctrl-C exits with 130.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _make_query(artist: str, title: str) -> Query:
    is_valid, error = validate_query(artist, title)
    if not is_valid:
        raise InvalidQueryError(error, details={'artist': artist, 'title': title})
    return Query(artist, title)


def _verification_line(outcome: VerificationOutcome) -> str:
    if not outcome.verified:
        return click.style("unverified (low confidence)", fg='yellow')
    status = "correct" if outcome.is_correct else "mismatch"
    color = 'green' if outcome.is_correct else 'red'
    return click.style(f"{status} by {outcome.verifier} ({outcome.confidence}%)", fg=color)


def _print_result(result: ResolutionResult) -> None:
    click.echo(result.lyrics)
    click.echo()
    click.echo(click.style("-" * 60, dim=True))
    click.echo(f"Source: {result.source}{' (cached)' if result.from_cache else ''}")
    click.echo(f"Confidence: {result.confidence:.2f}")
    click.echo(f"Completeness: {result.completeness_score}/100")
    click.echo(f"Timestamps: {'yes' if result.has_timestamps else 'no'}")
    if result.merged:
        click.echo(f"Merged from: {', '.join(result.sources)}")
    if result.metadata.get('first_verse_only'):
        click.echo(click.style("Looks like the first verse only", fg='yellow'))
    if result.verification is not None:
        click.echo(f"Verification: {_verification_line(result.verification)}")


def _result_json(result) -> dict:
    if isinstance(result, NotFound):
        return {
            'found': False,
            'query': {'artist': result.query.artist, 'title': result.query.title},
            'failures': [
                {'source': f.source, 'reason': f.reason.value, 'message': f.message}
                for f in result.failures
            ],
        }
    data = {'found': True, 'from_cache': result.from_cache, **result.to_dict()}
    if result.verification is not None:
        data['verification'] = result.verification.to_dict()
    return data


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    lyrics-resolver - find the most complete lyrics for a song

    Queries every configured source concurrently, scores the transcripts
    for completeness and merges partial ones when that helps.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"lyrics-resolver v{__version__}")
        return

    settings = reload_settings(config) if config else get_settings()

    if verbose:
        settings.logging.level = "DEBUG"
        ctx.obj['verbose'] = True

    configure_from_settings()

    if config:
        logger.info(f"Loaded config: {config}")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.argument('artist')
@click.argument('title')
@click.option('--verify', 'verify', is_flag=True, help='Run the verification chain on the result')
@click.option('--deadline', type=float, help='Overall deadline in seconds')
@click.option('--provider', 'providers', multiple=True, type=click.Choice(ALL_PROVIDERS),
              help='Query only this provider (repeatable)')
@click.option('--no-cache', is_flag=True, help='Bypass the cache')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@handle_error
def resolve(artist, title, verify, deadline, providers, no_cache, as_json):
    """
    Resolve lyrics for ARTIST and TITLE
    """
    query = _make_query(artist, title)

    is_valid, error = validate_deadline(deadline)
    if not is_valid:
        raise click.BadParameter(error, param_hint='--deadline')

    use_cache = not no_cache
    if providers:
        settings = get_settings()
        resolver = LyricsResolver(settings, providers=build_providers(settings, providers))
        # A restricted run must not read or overwrite the full resolution's cache entry
        use_cache = False
    else:
        resolver = get_lyrics_resolver()

    result = resolver.resolve(query, deadline=deadline, verify=verify or None, use_cache=use_cache)

    if as_json:
        click.echo(json.dumps(_result_json(result), ensure_ascii=False, indent=2))
        if not result.found:
            sys.exit(1)
        return

    if not result.found:
        click.echo(click.style(f"No lyrics found for {query}", fg='red'), err=True)
        for failure in result.failures:
            click.echo(f"   {failure}", err=True)
        sys.exit(1)

    _print_result(result)


@cli.command()
@click.argument('artist')
@click.argument('title')
@click.argument('lyrics_file', type=click.Path(exists=True, dir_okay=False))
@handle_error
def verify(artist, title, lyrics_file):
    """
    Verify a transcript in LYRICS_FILE against ARTIST and TITLE
    """
    query = _make_query(artist, title)
    lyrics = Path(lyrics_file).read_text(encoding='utf-8')

    outcome = get_lyrics_resolver().verify(query.artist, query.title, lyrics)

    click.echo(f"Verification: {_verification_line(outcome)}")
    click.echo(f"   Known song: {outcome.known_song}")
    click.echo(f"   Lyrics match: {outcome.lyrics_match}")
    click.echo(f"   Complete: {outcome.is_complete}")
    click.echo(f"   AI text: {outcome.is_ai_text}")
    if outcome.expected_opening:
        click.echo(f"   Expected opening: {outcome.expected_opening}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--verify', 'verify', is_flag=True, help='Verify every result')
@click.option('--deadline', type=float, help='Overall deadline per song in seconds')
@handle_error
def batch(file, verify, deadline):
    """
    Resolve every "Artist - Title" line in FILE
    """
    lines = Path(file).read_text(encoding='utf-8').splitlines()
    tracks = [parsed for parsed in (parse_track_line(line) for line in lines) if parsed]

    if not tracks:
        click.echo("No 'Artist - Title' lines found")
        return

    resolver = get_lyrics_resolver()
    operation = OperationLogger(logger, "Batch resolution")
    operation.start(f"Resolving {len(tracks)} songs")

    found, missing = [], []
    for index, (artist, title) in enumerate(tracks, 1):
        query = Query(artist, title)
        result = resolver.resolve(query, deadline=deadline, verify=verify or None)
        if result.found:
            found.append((query, result))
        else:
            missing.append(query)
        operation.progress(str(query), index, len(tracks))

    operation.complete(f"Resolved {len(found)}/{len(tracks)} songs")

    click.echo("\nResults:")
    for query, result in found:
        merged = f" merged {'+'.join(result.sources)}" if result.merged else ""
        click.echo(
            f"   [OK] {truncate_string(str(query), 50)}: {result.source} "
            f"({result.completeness_score}/100{merged})"
        )
    for query in missing:
        click.echo(f"   [FAIL] {truncate_string(str(query), 50)}: not found")


@cli.group()
def lyrics():
    """Lyrics provider commands"""
    pass


@lyrics.command()
@handle_error
def sources():
    """
    Check lyrics sources status
    """
    click.echo("Lyrics Sources Status:")
    for status in get_lyrics_resolver().provider_status():
        status_icon = "[OK]" if status['configured'] else "[FAIL]"
        status_text = "Available" if status['configured'] else "Not configured"
        kind = " (generative)" if status['generative'] else ""
        click.echo(f"   {status_icon} {status['name']}{kind}: {status_text}")


@cli.group()
def cache():
    """Cache management"""
    pass


@cache.command()
@handle_error
def stats():
    """Show cache statistics"""
    resolver = get_lyrics_resolver()
    if resolver.cache is None:
        click.echo("Cache is disabled")
        return

    data = resolver.cache.stats()
    memory, durable = data['memory'], data['durable']

    click.echo("Memory tier:")
    click.echo(f"   Entries: {memory['size']}/{memory['capacity']}")
    click.echo(f"   Hits: {memory['hits']}  Misses: {memory['misses']}  Hit rate: {memory['hit_rate']:.0%}")
    click.echo(f"   Evictions: {memory['evictions']}  Expirations: {memory['expirations']}")

    click.echo("\nDurable tier:")
    click.echo(f"   Backend: {durable['backend']}")
    click.echo(f"   Entries: {durable['size'] if durable['size'] is not None else 'unavailable'}")
    click.echo(f"   Errors: {durable['errors']}")


@cache.command()
@click.argument('artist', required=False)
@click.argument('title', required=False)
@click.confirmation_option(prompt='Delete cached results?')
@handle_error
def clear(artist, title):
    """
    Empty both cache tiers, or only ARTIST and TITLE when given
    """
    resolver = get_lyrics_resolver()
    if resolver.cache is None:
        click.echo("Cache is disabled")
        return

    if artist or title:
        query = _make_query(artist or '', title or '')
        resolver.cache.invalidate(query)
        click.echo(f"Removed {query} from the cache")
        return

    removed = resolver.cache.clear()
    click.echo(f"Cache cleared ({removed} durable entries removed)")


@cache.command()
@handle_error
def purge():
    """Remove expired entries from the durable tier"""
    resolver = get_lyrics_resolver()
    if resolver.cache is None:
        click.echo("Cache is disabled")
        return
    removed = resolver.cache.purge_expired()
    click.echo(f"Purged {removed} expired entries")


@cli.group()
def config():
    """Configuration management"""
    pass


@config.command()
@handle_error
def show():
    """
    Show current configuration
    """
    settings = get_settings()

    click.echo("Current Configuration:\n")
    if settings.loaded_from:
        click.echo(f"Loaded from: {settings.loaded_from}\n")

    click.echo("Lyrics:")
    click.echo(f"   Providers: {', '.join(settings.lyrics.providers)}")
    click.echo(f"   Configured: {', '.join(settings.enabled_providers()) or 'none'}")
    click.echo(f"   Deadline: {settings.lyrics.deadline}s")
    click.echo(f"   Good-enough score: {settings.lyrics.good_enough_score}")
    click.echo(f"   Significance gap: {settings.lyrics.significance_gap}")
    click.echo(f"   Minimum length: {settings.lyrics.min_length} chars")

    click.echo("\nCache:")
    click.echo(f"   Enabled: {settings.cache.enabled}")
    click.echo(f"   Memory: {settings.cache.capacity} entries, {settings.cache.ttl}s TTL")
    click.echo(f"   Durable: {settings.cache.durable_backend} ({settings.get_durable_cache_path()})")

    click.echo("\nVerification:")
    click.echo(f"   Enabled by default: {settings.verification.enabled}")
    click.echo(f"   Verifiers: {', '.join(settings.verification.verifiers)}")
    click.echo(f"   Threshold: {settings.verification.confidence_threshold}")

    click.echo("\nLogging:")
    click.echo(f"   Level: {settings.logging.level}")
    click.echo(f"   File: {settings.logging.file or 'none'}")


@config.command(name='set')
@click.option('--deadline', type=float, help='Set the overall deadline in seconds')
@click.option('--providers', help='Comma-separated provider list')
@click.option('--good-enough-score', type=click.IntRange(0, 100), help='Set the merge threshold score')
@click.option('--cache-ttl', type=int, help='Set the memory cache TTL in seconds')
@click.option('--verify/--no-verify', default=None, help='Verify results by default')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), help='Set log level')
@handle_error
def set_config(deadline, providers, good_enough_score, cache_ttl, verify, log_level):
    """
    Update configuration settings
    """
    settings = get_settings()
    changes = []

    if deadline is not None:
        is_valid, error = validate_deadline(deadline)
        if not is_valid:
            raise click.BadParameter(error, param_hint='--deadline')
        settings.lyrics.deadline = deadline
        changes.append(f"Deadline: {deadline}s")

    if providers:
        names = [name.strip() for name in providers.split(',') if name.strip()]
        unknown = [name for name in names if name not in ALL_PROVIDERS]
        if unknown:
            raise click.BadParameter(f"Unknown providers: {', '.join(unknown)}", param_hint='--providers')
        settings.lyrics.providers = names
        changes.append(f"Providers: {', '.join(names)}")

    if good_enough_score is not None:
        settings.lyrics.good_enough_score = good_enough_score
        changes.append(f"Good-enough score: {good_enough_score}")

    if cache_ttl is not None:
        settings.cache.ttl = cache_ttl
        changes.append(f"Cache TTL: {cache_ttl}s")

    if verify is not None:
        settings.verification.enabled = verify
        changes.append(f"Verify by default: {verify}")

    if log_level:
        settings.logging.level = log_level
        changes.append(f"Log level: {log_level}")

    if changes:
        path = settings.save_config()
        click.echo(f"Configuration updated ({path}):")
        for change in changes:
            click.echo(f"   - {change}")
    else:
        click.echo("No changes specified")


@cli.command()
@handle_error
def doctor():
    """
    Run system diagnostics
    """
    click.echo("Running diagnostics...\n")
    issues = []

    settings = get_settings()
    is_valid, errors = settings.validate()
    if is_valid:
        click.echo("Configuration: OK")
    else:
        click.echo("Configuration: Invalid")
        issues.extend(errors)

    configured = settings.enabled_providers()
    if configured:
        click.echo(f"Lyrics sources: {', '.join(configured)}")
    else:
        click.echo("Lyrics sources: None available")
        issues.append("No lyrics sources are configured")

    missing_keys = [
        name for name in settings.lyrics.providers
        if not settings.providers.is_configured(name)
    ]
    if missing_keys:
        click.echo(f"Missing credentials: {', '.join(missing_keys)}")

    dependencies = [
        ('lyricsgenius', 'lyricsgenius', 'required for Genius lookups'),
        ('bs4', 'beautifulsoup4', 'required for Melon and Bugs'),
        ('syncedlyrics', 'syncedlyrics', 'optional, install the extra-lyrics extra'),
    ]
    for module_name, display_name, purpose in dependencies:
        try:
            __import__(module_name)
            click.echo(f"{display_name}: OK")
        except ImportError:
            click.echo(f"{display_name}: Not installed")
            issues.append(f"{display_name} is {purpose}")

    if settings.cache.enabled:
        resolver = get_lyrics_resolver()
        backend = resolver.cache.durable.name if resolver.cache else "none"
        click.echo(f"Cache: memory + {backend} ({settings.get_durable_cache_path()})")
        if settings.cache.durable_backend == 'sqlite' and backend != 'sqlite':
            issues.append("Durable cache could not be opened, running memory-only")
    else:
        click.echo("Cache: disabled")

    current_log = get_current_log_file()
    click.echo(f"Logging: {current_log}" if current_log else "Logging: Console only")

    if issues:
        click.echo(f"\nFound {len(issues)} issues:")
        for issue in issues:
            click.echo(f"   - {issue}")
    else:
        click.echo("\nAll systems operational!")


if __name__ == '__main__':
    cli()
