# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""AnswerVault operator CLI.

Commands:

    license setup-keys   Generate the RSA key pair used to sign licenses.
    license mint         Sign a license token for a customer.
    license status       Show the license state for this deployment.
    stale-check          Report stale answers and evidence as an issue.

Usage::

    answervault license setup-keys --out ./keys
    answervault license mint --customer "Acme Corp" --repo acme/vault --expiry 2027-01-01
    answervault license status --repo acme/vault
    GITHUB_TOKEN=... answervault stale-check --repo acme/vault --dry-run
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import click

from answervault import __version__
from answervault.config import get_settings
from answervault.lib.errors import VaultError
from answervault.license import (
    env_escape_pem,
    generate_keypair,
    get_license_status,
    mint_license,
)
from answervault.staleness import (
    compute_staleness,
    publish_stale_issue,
    render_stale_issue,
)
from answervault.storage import GitHubRepoClient, VaultStore


@click.group()
@click.version_option(__version__, prog_name="answervault")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """AnswerVault operator commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# license
# ---------------------------------------------------------------------------


@cli.group("license")
def license_group() -> None:
    """Create and inspect signed license tokens."""


@license_group.command("setup-keys")
@click.option(
    "--out",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory receiving private.pem and public.pem.",
)
@click.option("--force", is_flag=True, help="Overwrite an existing key pair.")
def setup_keys(out_dir: Path, force: bool) -> None:
    """Generate an RSA-2048 key pair."""
    private_path = out_dir / "private.pem"
    public_path = out_dir / "public.pem"
    if private_path.exists() and not force:
        raise click.ClickException(
            f"{private_path} already exists; pass --force to replace it"
        )

    keys = generate_keypair()
    out_dir.mkdir(parents=True, exist_ok=True)
    private_path.write_text(keys.private_pem, encoding="ascii")
    private_path.chmod(0o600)
    public_path.write_text(keys.public_pem, encoding="ascii")

    click.echo(f"Private key saved: {private_path} (never commit this file)")
    click.echo(f"Public key saved:  {public_path}")
    click.echo("")
    click.echo("Set this value as ANSWERVAULT_PUBLIC_KEY:")
    click.echo(env_escape_pem(keys.public_pem))


def _parse_expiry(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        day = datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=UTC)
    except ValueError as e:
        raise click.BadParameter(
            f"invalid expiry date {value!r} (expected YYYY-MM-DD)",
            param_hint="--expiry",
        ) from e
    return int(day.timestamp())


@license_group.command("mint")
@click.option("--customer", required=True, help="Customer name.")
@click.option(
    "--repo", required=True, help="Allowed repository (owner/name), or * for any."
)
@click.option("--expiry", default=None, help="Expiry date, YYYY-MM-DD. Default: never.")
@click.option(
    "--key",
    "key_path",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=Path("private.pem"),
    show_default=True,
    help="Private key PEM file.",
)
def mint(customer: str, repo: str, expiry: str | None, key_path: Path) -> None:
    """Sign a license token and print it."""
    expiry_ts = _parse_expiry(expiry)
    try:
        token = mint_license(
            key_path.read_text(encoding="utf-8"), customer, repo, expiry=expiry_ts
        )
    except ValueError as e:
        raise click.ClickException(f"Cannot sign license: {e}") from e

    click.echo(f"Customer:     {customer}", err=True)
    click.echo(f"Allowed repo: {repo}", err=True)
    click.echo(f"Expires:      {expiry or 'never'}", err=True)
    click.echo(token)


@license_group.command("status")
@click.option("--repo", default=None, help="Repository the license must cover.")
def status(repo: str | None) -> None:
    """Verify the configured license and print the result."""
    result = get_license_status(get_settings(), repo)
    if result.demo:
        click.echo(f"restricted: {result.error}")
        return
    expiry = (
        datetime.fromtimestamp(result.expiry, tz=UTC).date().isoformat()
        if result.expiry is not None
        else "never"
    )
    click.echo(
        f"licensed: {result.customer_name} (repo {result.allowed_repo}, expires {expiry})"
    )


# ---------------------------------------------------------------------------
# stale-check
# ---------------------------------------------------------------------------


async def _run_stale_check(token: str, repo: str, dry_run: bool) -> str | None:
    settings = get_settings()
    async with GitHubRepoClient(token, repo, settings=settings) as client:
        store = VaultStore(client)
        answers, evidence = await asyncio.gather(
            store.answers.list(), store.evidence.list()
        )
        report = compute_staleness(
            answers,
            evidence,
            answer_days=settings.stale_answer_days,
            evidence_days=settings.stale_evidence_days,
        )
        if dry_run:
            return None if report.is_empty else render_stale_issue(report)
        return await publish_stale_issue(client, report)


@cli.command("stale-check")
@click.option("--repo", required=True, help="Vault repository (owner/name).")
@click.option(
    "--token",
    default=lambda: os.environ.get("GITHUB_TOKEN", ""),
    help="GitHub token. Defaults to $GITHUB_TOKEN.",
)
@click.option("--dry-run", is_flag=True, help="Print the report instead of publishing it.")
def stale_check(repo: str, token: str, dry_run: bool) -> None:
    """Open or update the issue listing stale answers and evidence."""
    if not token:
        raise click.ClickException("A GitHub token is required (--token or GITHUB_TOKEN)")
    try:
        outcome = asyncio.run(_run_stale_check(token, repo, dry_run))
    except (VaultError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if outcome is None:
        click.echo("No stale items found.")
    elif dry_run:
        click.echo(outcome)
    else:
        click.echo(f"Staleness issue: {outcome}")


if __name__ == "__main__":
    cli()
