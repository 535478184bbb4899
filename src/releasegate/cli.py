"""Typer CLI for Releasegate."""

import asyncio
from datetime import datetime, timezone

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="releasegate", help="Releasegate: entitlement-gated release downloads")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Releasegate API server."""
    import uvicorn
    from releasegate.app import create_app
    from releasegate.common.config import get_settings
    from releasegate.common.logging import setup_logging

    setup_logging(get_settings().log_level)
    console.print(f"[bold green]Starting Releasegate on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def releases():
    """List published releases from the release host."""
    from releasegate.common.exceptions import ReleaseHostUnavailableError
    from releasegate.deps import close_http_client, get_release_catalog

    async def _load():
        try:
            return await get_release_catalog().list_releases()
        finally:
            await close_http_client()

    try:
        items = asyncio.run(_load())
    except ReleaseHostUnavailableError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)

    table = Table("Version", "Published", "Asset")
    for release in items:
        table.add_row(release.version, release.published_at.isoformat(), release.asset_name)
    console.print(table)


@app.command("mint-token")
def mint_token(
    customer_id: str = typer.Argument(..., help="Customer id to bind the token to"),
    version: str = typer.Argument(..., help="Release version"),
    ttl: int = typer.Option(60, help="Lifetime in seconds"),
):
    """Mint a download token offline (no entitlement check)."""
    from releasegate.common.config import get_settings
    from releasegate.common.exceptions import ConfigurationError
    from releasegate.downloads.token import DownloadTokenPayload, create_download_token, now_millis
    from releasegate.releases.catalog import normalize_release_version

    try:
        secret = get_settings().resolve_download_secret()
    except ConfigurationError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)

    payload = DownloadTokenPayload(
        customer_id=customer_id,
        version=normalize_release_version(version),
        expires_at=now_millis() + ttl * 1000,
    )
    console.print(f"[bold]{create_download_token(payload, secret)}[/bold]")


@app.command("verify-token")
def verify_token(
    token: str = typer.Argument(..., help="Download token to verify"),
):
    """Verify a download token's signature and expiry."""
    from releasegate.common.config import get_settings
    from releasegate.common.exceptions import ConfigurationError
    from releasegate.downloads.token import verify_download_token

    try:
        secret = get_settings().resolve_download_secret()
    except ConfigurationError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)

    payload = verify_download_token(token, secret)
    if payload is None:
        console.print("[bold red]INVALID[/bold red] — bad signature or expired")
        raise typer.Exit(1)

    expires = datetime.fromtimestamp(payload.expires_at / 1000, tz=timezone.utc)
    console.print(f"[bold green]VALID[/bold green] — expires {expires.isoformat()}")
    console.print(f"  Customer: {payload.customer_id}")
    console.print(f"  Version: {payload.version}")


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Releasegate server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
