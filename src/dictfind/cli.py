import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .constants import DEFAULT_REGISTRY_URL, DEFAULT_TIMEOUT_S, NetworkFamily
from .core.config import DictionaryConfig
from .core.errors import DictionaryError
from .registry.resolver import resolve_dictionary
from .services.dictionary_service import DictionaryService

console = Console()

FAMILIES = [f.value for f in NetworkFamily]


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """dictfind — dictionary discovery and failover for block indexers."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(level=level, format="%(message)s", handlers=[RichHandler(console=console, show_path=False)])


@cli.command("resolve")
@click.option("--family", type=click.Choice(FAMILIES, case_sensitive=False), required=True, help="Network family")
@click.option("--chain-id", required=True, help="Chain id or genesis hash")
@click.option("--registry", "registry_url", default=DEFAULT_REGISTRY_URL, show_default=True, help="Registry URL")
def resolve_cmd(family: str, chain_id: str, registry_url: str) -> None:
    """List dictionary endpoints registered for a chain, best first."""
    urls = asyncio.run(resolve_dictionary(family, chain_id, registry_url))
    if not urls:
        console.print(f"[yellow]no dictionary registered[/] for {family} chain {chain_id}")
        return
    for i, url in enumerate(urls):
        console.print(f"[bold]{i}[/] {url}")


@cli.command("probe")
@click.option("--chain-id", required=True, help="Chain id or genesis hash")
@click.option("--endpoint", "endpoints", multiple=True, help="Dictionary endpoint; repeat for several")
@click.option("--family", type=click.Choice(FAMILIES, case_sensitive=False), default=NetworkFamily.ETHEREUM.value, show_default=True)
@click.option("--registry", "registry_url", default=DEFAULT_REGISTRY_URL, show_default=True, help="Registry URL")
@click.option("--no-registry", is_flag=True, default=False, help="Only use --endpoint values")
@click.option("--timeout", "timeout_s", type=int, default=DEFAULT_TIMEOUT_S, show_default=True, help="Per-query timeout (s)")
@click.option("--height", type=int, default=None, help="Also report which dictionary would serve this height")
def probe_cmd(
    chain_id: str,
    endpoints: tuple[str, ...],
    family: str,
    registry_url: str,
    no_registry: bool,
    timeout_s: int,
    height: int | None,
) -> None:
    """Build the dictionary pool for a chain and show each dictionary's freshness."""
    config = DictionaryConfig(
        chain_id=chain_id,
        network_family=family,
        endpoints=endpoints,
        registry_url=registry_url,
        use_registry=not no_registry,
        timeout_s=timeout_s,
    )

    async def run() -> None:
        async with DictionaryService(config) as service:
            await service.init_dictionaries()

            table = Table(title=f"dictionaries for {family} chain {chain_id}")
            table.add_column("#", justify="right")
            table.add_column("endpoint")
            table.add_column("kind")
            table.add_column("start", justify="right")
            table.add_column("last processed", justify="right")
            if height is not None:
                table.add_column(f"valid @ {height:,}")

            for i, d in enumerate(service.dictionaries):
                md = d.metadata
                row = [
                    str(i),
                    d.endpoint,
                    getattr(d, "kind", type(d).__name__),
                    f"{md.start_height:,}",
                    "-" if md.last_processed_height is None else f"{md.last_processed_height:,}",
                ]
                if height is not None:
                    row.append("[green]yes[/]" if d.height_validation(height) else "[red]no[/]")
                table.add_row(*row)
            console.print(table)

            if height is not None:
                chosen = service.get_dictionary(height)
                if chosen is None:
                    console.print(f"[red]no dictionary[/] can serve height {height:,}")
                else:
                    console.print(f"[bold]selected[/]: {chosen.endpoint}")

    try:
        asyncio.run(run())
    except DictionaryError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    cli()
