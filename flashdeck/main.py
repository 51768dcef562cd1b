#!/usr/bin/env python3
"""
FlashDeck CLI - review and practice flashcard decks in your terminal

Main entry point with Click commands.
"""

import sys
import logging
import click
from rich.console import Console

from flashdeck.client import FlashDeckAPIClient
from flashdeck.config import load_settings
from flashdeck.display import display_deck_table
from flashdeck.exceptions import APIError
from flashdeck.models import StudyMode
from flashdeck.session import InteractiveStudySession

# Set up logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

console = Console()
settings = load_settings()


@click.group()
@click.pass_context
@click.option(
    '--api-url',
    default=settings.api_url,
    envvar='FLASHDECK_API_URL',
    help='Backend API URL (default: http://localhost:8000)'
)
@click.option(
    '--token',
    default=settings.token,
    envvar='FLASHDECK_TOKEN',
    help='Bearer token for the backend'
)
@click.option(
    '--timeout',
    default=settings.timeout,
    type=float,
    envvar='FLASHDECK_TIMEOUT',
    help='Request timeout in seconds (default: 30)'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
def cli(ctx, api_url, token, timeout, verbose):
    """
    FlashDeck CLI - Study flashcard decks in your terminal

    \b
    Examples:
        flashdeck decks                 # List your decks
        flashdeck review --deck abc123  # Review due cards
        flashdeck practice --deck abc123
    """
    # Set up logging level
    if verbose:
        logging.getLogger('flashdeck').setLevel(logging.DEBUG)
        logging.getLogger().setLevel(logging.INFO)

    # Store in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj['API_URL'] = api_url
    ctx.obj['TOKEN'] = token
    ctx.obj['TIMEOUT'] = timeout
    ctx.obj['VERBOSE'] = verbose


def _make_client(ctx) -> FlashDeckAPIClient:
    return FlashDeckAPIClient(ctx.obj['API_URL'], token=ctx.obj['TOKEN'], timeout=ctx.obj['TIMEOUT'])


def _run_session(ctx, deck: str, mode: StudyMode):
    try:
        api = _make_client(ctx)
        session = InteractiveStudySession(api, console, deck, mode=mode)
        session.run()

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red]Error: {e}[/red]")
        if ctx.obj['VERBOSE']:
            raise
        sys.exit(1)


@cli.command()
@click.pass_context
@click.option('--deck', required=True, help='Deck ID to review')
def review(ctx, deck):
    """Review the cards that are due in a deck"""
    _run_session(ctx, deck, StudyMode.REVIEW)


@cli.command()
@click.pass_context
@click.option('--deck', required=True, help='Deck ID to practice')
def practice(ctx, deck):
    """Practice a deck without affecting its schedule"""
    _run_session(ctx, deck, StudyMode.PRACTICE)


@cli.command()
@click.pass_context
def decks(ctx):
    """List available decks"""
    try:
        api = _make_client(ctx)
        deck_list = api.get_decks()

        if not deck_list:
            console.print("[yellow]No decks found[/yellow]")
            return

        display_deck_table(console, deck_list)

    except APIError as e:
        console.print(f"[red]Error: {e}[/red]")
        if ctx.obj['VERBOSE']:
            raise
        sys.exit(1)


@cli.command()
@click.pass_context
def health(ctx):
    """Check that the backend is reachable"""
    try:
        result = _make_client(ctx).health_check()
    except APIError as e:
        console.print(f"❌ [red]Backend unreachable: {e}[/red]")
        sys.exit(1)
    console.print(f"✅ Backend at {ctx.obj['API_URL']} is {(result or {}).get('status', 'up')}")


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information"""
    from flashdeck import __version__
    console.print(f"FlashDeck CLI v{__version__}")


if __name__ == '__main__':
    cli()
