#!/usr/bin/env python3
"""
GapCube CLI.

Usage:
    gapcube shuffle --tick 150 --sources mypkg.sources:build
    gapcube describe 13
    gapcube collide 0 26
    gapcube golden -n 10
    gapcube status
    gapcube config
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gapcube import __version__  # noqa: E402
from gapcube.config import config  # noqa: E402


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """GapCube - research-gap cube over sampled literature."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _shuffler(snapshot_path: str = None, sources_path: str = None, use_cache: bool = True):
    """Build a Shuffler; sources are only required for shuffling."""
    from gapcube.enrichment import RetractionIndexEnricher
    from gapcube.sampler import Sampler, load_sources
    from gapcube.shuffler import Shuffler
    from gapcube.sources.cache import ApiCache
    from gapcube.store import SnapshotStore

    store = SnapshotStore(Path(snapshot_path) if snapshot_path else config.SNAPSHOT_PATH)
    if not sources_path:
        return Shuffler(sampler=None, store=store)

    cache = ApiCache(config.SAMPLE_CACHE_PATH, config.SAMPLE_CACHE_TTL_SECONDS) if use_cache else None
    sampler = Sampler(load_sources(sources_path), cache=cache)
    enrichers = []
    retractions = RetractionIndexEnricher.from_file(config.RETRACTION_INDEX_PATH)
    if len(retractions):
        enrichers.append(retractions)
    return Shuffler(sampler=sampler, store=store, enrichers=enrichers)


# ============================================================================
# Shuffle Commands
# ============================================================================

@cli.command()
@click.option("--tick", default=0, type=int, help="Tick triggering this shuffle")
@click.option("--sources", "sources_path", default=None,
              help="Source factory as module:function (default: GAPCUBE_SOURCES)")
@click.option("--snapshot", "snapshot_path", type=click.Path(), help="Snapshot file")
@click.option("--cache/--no-cache", default=True, help="Reuse a fresh cached sample")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def shuffle(tick: int, sources_path: str, snapshot_path: str, cache: bool, output_json: bool):
    """Sample, classify and persist a new cube generation."""
    from gapcube.grid import render_cube
    from gapcube.shuffler import InsufficientSampleError

    sources_path = sources_path or config.SOURCES_FACTORY
    if not sources_path:
        raise click.UsageError("No sources configured: pass --sources or set GAPCUBE_SOURCES")

    config.ensure_dirs()
    shuffler = _shuffler(snapshot_path, sources_path, use_cache=cache)
    prior = shuffler.store.latest_generation()

    try:
        snapshot = asyncio.run(shuffler.shuffle(tick, prior))
    except InsufficientSampleError as e:
        click.echo(click.style(f"✗ {e}", fg="red"), err=True)
        sys.exit(1)

    if output_json:
        summary = {
            "generation": snapshot.generation,
            "tick": snapshot.created_at_tick,
            "total_documents": snapshot.total_documents,
            "source_breakdown": snapshot.source_breakdown,
            "axis_labels": snapshot.axis_labels,
            "distribution": snapshot.distribution,
            "from_cache": snapshot.from_cache,
            "duration_ms": snapshot.duration_ms,
        }
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(click.style(
        f"\n✓ Generation {snapshot.generation}: {snapshot.total_documents} documents "
        f"({snapshot.duration_ms}ms)", fg="green", bold=True,
    ))
    for label, count in snapshot.source_breakdown.items():
        click.echo(f"  {label:<20} {count:>6}")
    click.echo(f"  Clusters: {', '.join(snapshot.axis_labels['z'])}\n")
    click.echo(render_cube(snapshot.distribution))


# ============================================================================
# Query Commands
# ============================================================================

@cli.command()
@click.argument("cell", type=int)
@click.option("-k", "--top-k", default=None, type=int, help="Number of top documents")
@click.option("--snapshot", "snapshot_path", type=click.Path(), help="Snapshot file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def describe(cell: int, top_k: int, snapshot_path: str, output_json: bool):
    """Describe one cell of the latest generation."""
    shuffler = _shuffler(snapshot_path)
    try:
        info = shuffler.get_cell_description(cell, top_k=top_k)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="CELL")

    if info is None:
        click.echo("No cube generation yet. Run `gapcube shuffle` first.")
        sys.exit(1)

    if output_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.echo(click.style(f"\nCell {info['cell']} ({info['x']}, {info['y']}, {info['z']})", fg="green", bold=True))
    click.echo(f"  {info['description']}")
    click.echo(f"  Avg surprise: {info['avg_surprise_score']:.3f}\n")
    for i, doc in enumerate(info["top_documents"]):
        click.echo(click.style(f"[{i+1}] {doc['title']}", bold=True))
        meta = [str(doc["year"]) if doc["year"] else None, doc["doi"], f"{doc['citation_count']} citations"]
        click.echo(f"    {' | '.join(m for m in meta if m)}")
        if doc["abstract"]:
            click.echo(f"    {doc['abstract'][:200]}...")
        click.echo()


@cli.command()
@click.argument("cell_a", type=int)
@click.argument("cell_b", type=int)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def collide(cell_a: int, cell_b: int, output_json: bool):
    """Score the collision between two cells."""
    from gapcube.collision import score_cells

    try:
        result = score_cells(cell_a, cell_b)
    except ValueError as e:
        raise click.BadParameter(str(e))

    if output_json:
        click.echo(json.dumps({"cell_a": cell_a, "cell_b": cell_b, **result.to_dict()}, indent=2))
        return

    color = "yellow" if result.golden else "white"
    marker = "★ GOLDEN" if result.golden else ""
    click.echo(click.style(f"\n{cell_a} × {cell_b}: {result.score:.3f} {marker}", fg=color, bold=True))
    c = result.components
    click.echo(f"  Method distance:      {c.method_distance:.3f}")
    click.echo(f"  Surprise interaction: {c.surprise_interaction:.3f}")
    click.echo(f"  Semantic distance:    {c.semantic_distance:.3f}")


@cli.command()
@click.option("-n", "--limit", default=10, help="Maximum pairs to list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def golden(limit: int, output_json: bool):
    """List golden cell pairs, highest score first."""
    from gapcube.collision import golden_pairs

    all_pairs = golden_pairs()
    pairs = all_pairs[:limit]

    if output_json:
        click.echo(json.dumps(
            [{"cell_a": a, "cell_b": b, **s.to_dict()} for a, b, s in pairs], indent=2
        ))
        return

    click.echo(f"\n{len(all_pairs)} golden pairs, top {len(pairs)}:\n")
    for a, b, s in pairs:
        click.echo(f"  {a:>2} × {b:>2}  {s.score:.3f}")


# ============================================================================
# Status & Admin Commands
# ============================================================================

@cli.command()
@click.option("--snapshot", "snapshot_path", type=click.Path(), help="Snapshot file")
@click.option("--runs", default=0, help="Also show the last N telemetry records")
def status(snapshot_path: str, runs: int):
    """Show the latest cube generation."""
    from gapcube.grid import render_cube
    from gapcube.telemetry import read_telemetry_logs

    shuffler = _shuffler(snapshot_path)
    snapshot = shuffler.latest()

    if snapshot is None:
        click.echo(f"No cube generation at {shuffler.store.path}")
    else:
        empty = sum(1 for c in snapshot.cells if c.paper_count == 0)
        click.echo("\nGapCube Status")
        click.echo("=" * 40)
        click.echo(f"Generation:        {snapshot.generation:>15}")
        click.echo(f"Created at tick:   {snapshot.created_at_tick:>15}")
        click.echo(f"Created at:        {snapshot.created_at[:19]:>15}")
        click.echo(f"Documents:         {snapshot.total_documents:>15,}")
        click.echo(f"Empty cells:       {empty:>15}")
        click.echo(f"From cache:        {str(snapshot.from_cache):>15}")
        click.echo(f"\nClusters: {', '.join(snapshot.axis_labels.get('z', []))}\n")
        click.echo(render_cube(snapshot.distribution))

    if runs:
        click.echo(f"\nLast {runs} shuffle runs:")
        for record in read_telemetry_logs(limit=runs):
            errors = f" errors={len(record.get('errors', []))}" if record.get("errors") else ""
            click.echo(
                f"  {record.get('timestamp', '')[:19]} tick={record.get('tick')} "
                f"gen={record.get('generation')} docs={record.get('total_documents')}"
                f" {record.get('total_latency_ms', 0):.0f}ms{errors}"
            )


@cli.command(name="config")
def show_config():
    """Show configuration and validation problems."""
    click.echo(repr(config))
    click.echo("\nSource weights:")
    for label, weight in config.SOURCE_WEIGHTS.items():
        click.echo(f"  {label:<20} {weight:.2f}")

    errors = config.validate()
    if errors:
        click.echo(click.style("\nConfiguration problems:", fg="red"))
        for error in errors:
            click.echo(f"  ✗ {error}")
        sys.exit(1)
    click.echo(click.style("\n✓ Configuration valid", fg="green"))


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
