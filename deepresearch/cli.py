"""Command-line interface for the deep research orchestrator."""

import asyncio
import json
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Annotated

import typer

from .config.loader import DEFAULT_CONFIG_PATH, load_config, load_config_file
from .config.factory import create_orchestrator, create_providers, create_run_params
from .providers import evidence_key

app = typer.Typer(
    name="deepresearch",
    help="Iterative multi-source retrieval for sectioned research reports.",
    add_completion=False,
)


@app.command()
def run(
    query: Annotated[str, typer.Argument(help="Research question")],
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = "default",
    seed_urls: Annotated[
        list[str],
        typer.Option(
            "--seed-url", "-u",
            help="URL to fetch directly (can specify multiple)",
        ),
    ] = None,
    as_of: Annotated[
        str,
        typer.Option("--as-of", help="As-of date for time-sensitive sections (YYYY-MM-DD)"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Result limit (per section call: max(3, limit/2))"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Path to profiles YAML"),
    ] = None,
):
    """
    Gather evidence for every report section.

    Examples:

        # Offline run against the mock corpus
        deepresearch run "防衛費 増額" -p offline

        # Include seed documents and an as-of date
        deepresearch run "防衛費 増額" -u https://example.go.jp/plan.html --as-of 2024-04-01

        # Output as JSON
        deepresearch run "防衛費 増額" -p offline --format json
    """
    if not query.strip():
        typer.echo("Error: query must not be empty", err=True)
        raise typer.Exit(1)

    if output_format not in ("text", "json"):
        typer.echo("Error: format must be one of: text, json", err=True)
        raise typer.Exit(1)

    if limit is not None and limit < 1:
        typer.echo("Error: limit must be a positive integer", err=True)
        raise typer.Exit(1)

    asyncio.run(_run_async(
        query=query,
        profile=profile,
        seed_urls=seed_urls or [],
        as_of=as_of,
        limit=limit,
        output_format=output_format,
        config_path=config_path,
    ))


async def _run_async(
    query: str,
    profile: str,
    seed_urls: list[str],
    as_of: str | None,
    limit: int | None,
    output_format: str,
    config_path: Path | None,
):
    """Async implementation of run."""
    from .orchestration import KeywordPlanner

    config = load_config(profile, config_path)
    providers, seed_provider = create_providers(config)
    orchestrator = create_orchestrator(config)

    plan = await KeywordPlanner().create_plan(query)

    params = create_run_params(
        config,
        query=query,
        base_subqueries=plan.subqueries,
        providers=providers,
        seed_provider=seed_provider,
        seed_urls=seed_urls,
        as_of_date=as_of,
        limit=limit,
    )

    async with AsyncExitStack() as stack:
        for provider in [*providers, *([seed_provider] if seed_provider else [])]:
            if hasattr(provider, "__aenter__"):
                await stack.enter_async_context(provider)
        result = await orchestrator.run(params)

    if output_format == "json":
        output = {
            "query": query,
            "iterations": result.iterations,
            "coverage": {
                "current": result.coverage.current,
                "missing": result.coverage.missing,
            },
            "documents": [
                {
                    "id": d.id,
                    "title": d.title,
                    "url": d.url,
                    "date": d.date,
                    "score": d.score,
                    "provider": d.provider_id,
                    "sections": sorted(result.section_hit_map.get(evidence_key(d), [])),
                }
                for d in result.final_docs
            ],
            "statistics": result.statistics.to_dict() if result.statistics else None,
        }
        typer.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    typer.echo(f"Iterations: {result.iterations}")
    typer.echo("Coverage:")
    for section, count in result.coverage.current.items():
        missing = result.coverage.missing.get(section)
        suffix = f" (missing {missing})" if missing else ""
        typer.echo(f"  {section}: {count}{suffix}")
    typer.echo()

    if not result.all_docs:
        typer.echo("No documents found.")
        return

    typer.echo(f"Collected {result.unique_documents} unique documents ({result.total_documents} hits):\n")
    seen: set[str] = set()
    for d in result.all_docs:
        key = evidence_key(d)
        if key in seen:
            continue
        seen.add(key)
        typer.echo(f"{len(seen)}. [{d.provider_id}] {d.title or d.id}")
        if d.url:
            typer.echo(f"   URL: {d.url}")
        typer.echo(f"   Sections: {', '.join(sorted(result.section_hit_map.get(key, [])))}")
        typer.echo()


@app.command()
def sections(
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = "default",
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Path to profiles YAML"),
    ] = None,
):
    """List the sections of a profile with their providers and targets."""
    config = load_config(profile, config_path)

    typer.echo(f"Sections ({profile}):\n")
    for name, section in config.sections.items():
        providers = ", ".join(section.providers) or "(none)"
        typer.echo(f"  {name}")
        typer.echo(f"    Providers: {providers}")
        typer.echo(f"    Target: {section.target}")
        typer.echo()


@app.command()
def profiles(
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Path to profiles YAML"),
    ] = None,
):
    """List available configuration profiles."""
    config_file = load_config_file(config_path or DEFAULT_CONFIG_PATH)

    typer.echo("Available profiles:\n")
    for name, profile in config_file.profiles.items():
        typer.echo(f"  {name}")
        typer.echo(f"    Providers: {', '.join(p.id for p in profile.providers) or '(none)'}")
        typer.echo(f"    Seed provider: {profile.seed_provider or '(none)'}")
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
