"""piivault CLI - anonymize and restore PII from the command line."""

from pathlib import Path
from typing import Optional
import logging
import sys

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import get_config, set_config, Config
from .completion import SecureCompletion, get_completion_client
from .errors import VaultError
from .types import Category
from .vault.manager import Vault
from .vault.store import create_store


# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)]
)
logger = logging.getLogger("piivault")

app = typer.Typer(
    name="piivault",
    help="Reversible PII tokenization for emails, phone numbers and names",
    no_args_is_help=True,
)

console = Console()

DataDirOption = typer.Option(None, "--data-dir", "-d", help="Data directory")


def init_app(data_dir: Optional[Path] = None, verbose: bool = False) -> Vault:
    """Initialize configuration and open the vault."""
    config = get_config()

    if data_dir:
        config = Config(data_dir=data_dir, store=config.store, completion=config.completion)
        set_config(config)

    if verbose:
        logger.setLevel(logging.DEBUG)

    try:
        return Vault(create_store(config))
    except VaultError as e:
        console.print(f"[red]Cannot open vault: {e}[/red]")
        raise typer.Exit(1)


def read_text(text: str) -> str:
    """'-' reads the text from stdin."""
    if text == "-":
        return sys.stdin.read()
    return text


def print_text(text: str):
    """Print user text verbatim; brackets are not Rich markup here."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


@app.command()
def anonymize(
    text: str = typer.Argument(..., help="Text to anonymize ('-' for stdin)"),
    show_map: bool = typer.Option(False, "--map", "-m", help="Show token table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    data_dir: Optional[Path] = DataDirOption,
):
    """Replace emails, phone numbers and names with tokens."""
    vault = init_app(data_dir, verbose)

    try:
        result = vault.anonymize_with_map(read_text(text))
    except VaultError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    print_text(result.safe_text)

    if show_map and result.token_map:
        table = Table(title="Tokens")
        table.add_column("Token", style="cyan")
        table.add_column("Original")
        for token, original in result.token_map.items():
            table.add_row(token, original)
        console.print(table)

    if result.degraded:
        console.print(
            f"[yellow]⚠ {len(result.degraded_tokens)} mapping(s) not stored; "
            "these tokens may not restore[/yellow]"
        )


@app.command()
def deanonymize(
    text: str = typer.Argument(..., help="Text with tokens ('-' for stdin)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    data_dir: Optional[Path] = DataDirOption,
):
    """Restore tokens to their original values."""
    vault = init_app(data_dir, verbose)

    try:
        result = vault.deanonymize_with_map(read_text(text))
    except VaultError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    print_text(result.text)

    if result.unresolved:
        console.print(f"[yellow]⚠ Unresolved: {', '.join(result.unresolved)}[/yellow]")


@app.command("detect")
def detect_text(
    text: str = typer.Argument(..., help="Text to scan ('-' for stdin)"),
    data_dir: Optional[Path] = DataDirOption,
):
    """Detect PII in a single text (without storing)."""
    vault = init_app(data_dir)

    try:
        detected = vault.detect(read_text(text))
    except VaultError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Detected PII")
    table.add_column("Category", style="cyan")
    table.add_column("Value")

    for category, values in detected.items():
        for value in values:
            table.add_row(category, repr(value))

    if table.row_count:
        console.print(table)
    else:
        console.print("[dim]No PII found[/dim]")


@app.command()
def stats(data_dir: Optional[Path] = DataDirOption):
    """Show mapping counts per category."""
    vault = init_app(data_dir)
    data = vault.stats()

    table = Table(title="Token Mappings")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")

    for category, count in data["by_category"].items():
        table.add_row(category, str(count))
    table.add_row("[bold]Total[/bold]", f"[bold]{data['total']}[/bold]")

    console.print(table)


@app.command()
def mappings(
    category: Optional[Category] = typer.Option(None, "--category", "-c", help="Only this category"),
    reveal: bool = typer.Option(False, "--reveal", help="Show original values"),
    data_dir: Optional[Path] = DataDirOption,
):
    """List stored token mappings."""
    vault = init_app(data_dir)
    rows = vault.get_all_mappings(category)

    if not rows:
        console.print("[yellow]No mappings stored.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"{len(rows)} Mappings")
    table.add_column("Token", style="cyan")
    table.add_column("Category")
    table.add_column("Original")
    table.add_column("Uses", justify="right")
    table.add_column("Last used")

    for row in rows:
        table.add_row(
            row["token"],
            row["category"],
            row["original"] if reveal else "•" * 8,
            str(row["usage_count"]),
            row["last_used"][:19],
        )

    console.print(table)


@app.command()
def lookup(
    token: str = typer.Argument(..., help="Token, e.g. EMAIL_8004719c"),
    data_dir: Optional[Path] = DataDirOption,
):
    """Show the mapping behind one token."""
    vault = init_app(data_dir)
    mapping = vault.get_token_mapping(token)

    if mapping is None:
        console.print(f"[yellow]Token not found: {token}[/yellow]")
        raise typer.Exit(1)

    for key, value in mapping.items():
        console.print(f"  {key:<12} {value}", markup=False, highlight=False)


@app.command()
def reset(
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    data_dir: Optional[Path] = DataDirOption,
):
    """Delete every stored mapping."""
    vault = init_app(data_dir)

    if not confirm:
        confirm = typer.confirm("Delete all mappings? Existing tokens will no longer restore")

    if confirm:
        count = vault.reset()
        console.print(f"[green]✓ Removed {count} mappings[/green]")
    else:
        console.print("[yellow]Cancelled[/yellow]")


@app.command()
def complete(
    prompt: str = typer.Argument(..., help="Prompt containing PII ('-' for stdin)"),
    system: Optional[str] = typer.Option(None, "--system", "-s", help="System message"),
    show_anonymized: bool = typer.Option(False, "--show-anonymized", help="Print what the LLM saw"),
    data_dir: Optional[Path] = DataDirOption,
):
    """Anonymize a prompt, send it to the configured LLM, restore the answer."""
    vault = init_app(data_dir)

    try:
        secure = SecureCompletion(vault, get_completion_client())
        result = secure.complete(read_text(prompt), system_message=system)
    except VaultError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if show_anonymized:
        console.print("[dim]Prompt sent:[/dim]")
        print_text(result.anonymized_prompt)
        console.print("[dim]Answer received:[/dim]")
        print_text(result.anonymized_text)
        console.print()

    print_text(result.text)
    console.print(
        f"[dim]{result.model} · {result.usage.get('total_tokens', 0)} tokens · "
        f"{result.pii_count} PII tokens sent[/dim]"
    )


@app.command("config-show")
def config_show():
    """Show current configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Current Configuration[/bold]")
    console.print("─" * 40)
    console.print(f"  Data directory:  {config.data_dir}")
    console.print(f"  Store:           {config.store}")
    console.print(f"  Database:        {config.db_path}")
    console.print(f"  Key file:        {config.key_path}")
    console.print(f"  Completion:      {config.completion.provider}")
    console.print()


if __name__ == "__main__":
    app()
