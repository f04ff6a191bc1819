"""Command-line interface for the Outscraper client."""

from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, Optional

import click
import structlog
from rich.console import Console

from outscraper_aio import __version__
from outscraper_aio.client import OutscraperClient
from outscraper_aio.config import find_config_file, load_config
from outscraper_aio.exceptions import ConfigurationError, OutscraperError
from outscraper_aio.observability import configure_logging

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger(__name__)

ClientCall = Callable[[OutscraperClient, asyncio.Event], Awaitable[Any]]

# Shell convention for a process ended by SIGINT
EXIT_INTERRUPTED = 130


def fail(message: str) -> NoReturn:
    err_console.print(f"Error: {message}", style="red", markup=False)
    sys.exit(1)


def interrupt_handler(task: asyncio.Task, cancel_event: asyncio.Event, polled: bool) -> Callable[[], None]:
    """
    Build the SIGINT callback for a running command.

    For polled commands the first interrupt sets ``cancel_event`` so the wait
    ends with ``Cancelled``; any further interrupt, or the first one for a
    plain request, cancels ``task`` outright.
    """

    def on_interrupt() -> None:
        if polled and not cancel_event.is_set():
            cancel_event.set()
            err_console.print("Cancelling, press Ctrl-C again to abort", style="yellow")
        else:
            task.cancel()

    return on_interrupt


def _install_interrupt_handler(callback: Callable[[], None]) -> bool:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, callback)
    except (NotImplementedError, RuntimeError):
        # Windows event loops and non-main threads do not support signal handlers
        return False
    return True


def run_client_call(ctx: click.Context, call: ClientCall, *, polled: bool = False) -> None:
    """Open a client, await ``call`` and print its JSON result."""

    async def runner() -> Any:
        cancel_event = asyncio.Event()
        task = asyncio.current_task()
        installed = task is not None and _install_interrupt_handler(interrupt_handler(task, cancel_event, polled))
        try:
            async with OutscraperClient(ctx.obj["api_key"], config=ctx.obj["config"]) as client:
                return await call(client, cancel_event)
        finally:
            if installed:
                asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    try:
        result = asyncio.run(runner())
    except OutscraperError as e:
        logger.debug("Command failed", error_type=type(e).__name__, error=str(e))
        fail(str(e))
    except asyncio.CancelledError:
        logger.debug("Command aborted")
        err_console.print("Aborted", style="red")
        sys.exit(EXIT_INTERRUPTED)

    console.print_json(data=result)


# --- Shared options ---


def query_argument(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.argument("query", nargs=-1, required=True)(func)


def locale_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--region", default=None, help="Country code, e.g. US")(func)
    func = click.option("--language", default="en", show_default=True, help="Interface language")(func)
    return func


def async_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--webhook", default=None, help="Callback URL notified when the task finishes")(func)
    func = click.option(
        "--async",
        "async_request",
        is_flag=True,
        help="Return the submission envelope (with the request id) instead of waiting",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option("--api-key", default=None, help="API key (defaults to OUTSCRAPER_API_KEY)")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides monitoring.log_level)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], api_key: Optional[str], log_level: Optional[str]) -> None:
    """outscraper-aio - query the Outscraper API from the shell."""
    ctx.ensure_object(dict)

    config_path = Path(config) if config else find_config_file()
    try:
        settings = load_config(config_path)
    except ConfigurationError as e:
        fail(str(e))
    if log_level:
        settings.monitoring.log_level = log_level
    configure_logging(settings.monitoring)

    ctx.obj["config"] = settings
    ctx.obj["api_key"] = api_key


@cli.command()
@click.pass_context
def history(ctx: click.Context) -> None:
    """Show up to 100 of your last requests."""
    run_client_call(ctx, lambda client, _: client.get_requests_history())


@cli.command()
@click.argument("request_id")
@click.option("--wait", is_flag=True, help="Poll until the request leaves the Pending state")
@click.pass_context
def archive(ctx: click.Context, request_id: str, wait: bool) -> None:
    """Fetch a request result from the archive."""
    if wait:
        run_client_call(
            ctx,
            lambda client, cancel: client.wait_request_archive(request_id, cancel_event=cancel),
            polled=True,
        )
    else:
        run_client_call(ctx, lambda client, _: client.get_request_archive(request_id))


@cli.command("google-search")
@query_argument
@click.option("--pages-per-query", default=1, show_default=True, help="Pages to return per query")
@click.option("--uule", default="", help="Google UULE location code")
@locale_options
@click.option("--webhook", default=None, help="Callback URL notified when the task finishes")
@click.pass_context
def google_search(
    ctx: click.Context,
    query: tuple[str, ...],
    pages_per_query: int,
    uule: str,
    language: str,
    region: Optional[str],
    webhook: Optional[str],
) -> None:
    """Search Google."""
    run_client_call(
        ctx,
        lambda client, _: client.google_search(
            list(query),
            pages_per_query=pages_per_query,
            uule=uule,
            language=language,
            region=region,
            webhook=webhook,
        ),
    )


@cli.command("maps-search")
@query_argument
@locale_options
@click.option("--limit", default=400, show_default=True, help="Places per query")
@click.option("--coordinates", default=None, help='Coordinates, e.g. "@41.3954381,2.1628662,15.1z"')
@click.option("--drop-duplicates", is_flag=True, help="Drop places found by several queries")
@click.option("--skip", default=0, show_default=True, help="Skip the first N places (multiple of 20)")
@async_options
@click.pass_context
def maps_search(
    ctx: click.Context,
    query: tuple[str, ...],
    language: str,
    region: Optional[str],
    limit: int,
    coordinates: Optional[str],
    drop_duplicates: bool,
    skip: int,
    async_request: bool,
    webhook: Optional[str],
) -> None:
    """Search places on Google Maps."""
    run_client_call(
        ctx,
        lambda client, _: client.google_maps_search(
            list(query),
            language=language,
            region=region,
            limit=limit,
            coordinates=coordinates,
            drop_duplicates=drop_duplicates,
            skip=skip,
            async_request=async_request,
            webhook=webhook,
        ),
    )


@cli.command("maps-search-v1")
@query_argument
@locale_options
@click.option("--limit", default=400, show_default=True, help="Places per query")
@click.option("--extract-contacts", is_flag=True, help="Also scrape contacts from the places' websites")
@click.option("--coordinates", default=None, help='Coordinates, e.g. "@41.3954381,2.1628662,15.1z"')
@click.option("--drop-duplicates", is_flag=True, help="Drop places found by several queries")
@click.pass_context
def maps_search_v1(
    ctx: click.Context,
    query: tuple[str, ...],
    language: str,
    region: Optional[str],
    limit: int,
    extract_contacts: bool,
    coordinates: Optional[str],
    drop_duplicates: bool,
) -> None:
    """Search places on Google Maps (legacy endpoint, waits for the result)."""
    run_client_call(
        ctx,
        lambda client, cancel: client.google_maps_search_v1(
            list(query),
            language=language,
            region=region,
            limit=limit,
            extract_contacts=extract_contacts,
            coordinates=coordinates,
            drop_duplicates=drop_duplicates,
            cancel_event=cancel,
        ),
        polled=True,
    )


@cli.command("maps-reviews")
@query_argument
@locale_options
@click.option("--limit", default=1, show_default=True, help="Places per query")
@click.option("--reviews-limit", default=100, show_default=True, help="Reviews per place")
@click.option("--coordinates", default=None, help="Coordinates used along with the query")
@click.option("--start", type=int, default=None, help="Timestamp of the newest review to start from")
@click.option("--cutoff", type=int, default=None, help="Oldest review timestamp to return")
@click.option("--cutoff-rating", type=int, default=None, help="Rating bound for rating sorts")
@click.option(
    "--sort",
    default="most_relevant",
    show_default=True,
    type=click.Choice(["most_relevant", "newest", "highest_rating", "lowest_rating"]),
)
@click.option("--reviews-query", default=None, help="Search among the reviews")
@click.option("--ignore-empty", is_flag=True, help="Skip reviews without text")
@click.option("--source", default=None, help="Review source filter")
@click.option("--last-pagination-id", default=None, help="review_pagination_id of the last item")
@async_options
@click.pass_context
def maps_reviews(
    ctx: click.Context,
    query: tuple[str, ...],
    language: str,
    region: Optional[str],
    limit: int,
    reviews_limit: int,
    coordinates: Optional[str],
    start: Optional[int],
    cutoff: Optional[int],
    cutoff_rating: Optional[int],
    sort: str,
    reviews_query: Optional[str],
    ignore_empty: bool,
    source: Optional[str],
    last_pagination_id: Optional[str],
    async_request: bool,
    webhook: Optional[str],
) -> None:
    """Get reviews from Google Maps."""
    run_client_call(
        ctx,
        lambda client, _: client.google_maps_reviews(
            list(query),
            language=language,
            region=region,
            limit=limit,
            reviews_limit=reviews_limit,
            coordinates=coordinates,
            start=start,
            cutoff=cutoff,
            cutoff_rating=cutoff_rating,
            sort=sort,
            reviews_query=reviews_query,
            ignore_empty=ignore_empty,
            source=source,
            last_pagination_id=last_pagination_id,
            async_request=async_request,
            webhook=webhook,
        ),
    )


@cli.command("maps-reviews-v2")
@query_argument
@locale_options
@click.option("--limit", default=1, show_default=True, help="Places per query")
@click.option("--reviews-limit", default=100, show_default=True, help="Reviews per place")
@click.option("--coordinates", default=None, help="Coordinates used along with the query")
@click.option("--cutoff", type=int, default=None, help="Oldest review timestamp to return")
@click.option("--cutoff-rating", type=int, default=None, help="Rating bound for rating sorts")
@click.option(
    "--sort",
    default="most_relevant",
    show_default=True,
    type=click.Choice(["most_relevant", "newest", "highest_rating", "lowest_rating"]),
)
@click.option("--reviews-query", default=None, help="Search among the reviews")
@click.option("--ignore-empty", is_flag=True, help="Skip reviews without text")
@click.pass_context
def maps_reviews_v2(
    ctx: click.Context,
    query: tuple[str, ...],
    language: str,
    region: Optional[str],
    limit: int,
    reviews_limit: int,
    coordinates: Optional[str],
    cutoff: Optional[int],
    cutoff_rating: Optional[int],
    sort: str,
    reviews_query: Optional[str],
    ignore_empty: bool,
) -> None:
    """Get reviews from Google Maps (legacy endpoint, waits for the result)."""
    run_client_call(
        ctx,
        lambda client, cancel: client.google_maps_reviews_v2(
            list(query),
            language=language,
            region=region,
            limit=limit,
            reviews_limit=reviews_limit,
            coordinates=coordinates,
            cutoff=cutoff,
            cutoff_rating=cutoff_rating,
            sort=sort,
            reviews_query=reviews_query,
            ignore_empty=ignore_empty,
            cancel_event=cancel,
        ),
        polled=True,
    )


@cli.command()
@query_argument
@click.pass_context
def emails(ctx: click.Context, query: tuple[str, ...]) -> None:
    """Find emails, social links and phones for domains."""
    run_client_call(ctx, lambda client, _: client.emails_and_contacts(list(query)))


@cli.command()
@query_argument
@click.pass_context
def phones(ctx: click.Context, query: tuple[str, ...]) -> None:
    """Enrich phone numbers with carrier data."""
    run_client_call(ctx, lambda client, _: client.phones_enricher(list(query)))


@cli.command()
@query_argument
@click.pass_context
def trustpilot(ctx: click.Context, query: tuple[str, ...]) -> None:
    """Get Trustpilot business data."""
    run_client_call(ctx, lambda client, cancel: client.trustpilot(list(query), cancel_event=cancel), polled=True)


@cli.command("trustpilot-search")
@query_argument
@click.option("--limit", default=100, show_default=True, help="Items per query")
@click.pass_context
def trustpilot_search(ctx: click.Context, query: tuple[str, ...], limit: int) -> None:
    """Search Trustpilot."""
    run_client_call(
        ctx,
        lambda client, cancel: client.trustpilot_search(list(query), limit=limit, cancel_event=cancel),
        polled=True,
    )


@cli.command("trustpilot-reviews")
@query_argument
@click.option("--limit", default=100, show_default=True, help="Reviews per query")
@click.option("--sort", default=None, help="Sorting type, e.g. recency")
@click.option("--cutoff", type=int, default=None, help="Oldest review timestamp to return")
@click.pass_context
def trustpilot_reviews(
    ctx: click.Context, query: tuple[str, ...], limit: int, sort: Optional[str], cutoff: Optional[int]
) -> None:
    """Get reviews of Trustpilot businesses."""
    run_client_call(
        ctx,
        lambda client, cancel: client.trustpilot_reviews(
            list(query), limit=limit, sort=sort, cutoff=cutoff, cancel_event=cancel
        ),
        polled=True,
    )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
