"""CLI for the Analysis Consensus Engine.

Provides a command-line interface for processing, validating and
matching classification results.
"""

import json
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .catalog import load_catalog
from .config import find_config_file, get_config, load_config, reset_config
from .pattern_scorer import PatternScorer, ScoringWeights
from .processor import AnalysisProcessor
from .schema import (
    ArchitecturePatternMatch,
    ConfidenceLevel,
    ProcessedResult,
    UserPreferences,
    ValidationReport,
)
from .validator import ResultValidator

console = Console()

LEVEL_COLORS = {
    ConfidenceLevel.EXCELLENT: "green",
    ConfidenceLevel.GOOD: "cyan",
    ConfidenceLevel.FAIR: "yellow",
    ConfidenceLevel.LOW: "red",
    ConfidenceLevel.ERROR: "bold red",
}

config_option = click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to consensus-config.yaml (default: auto-discover)"
)
json_output_option = click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)


@click.group()
@click.version_option(version="1.0.0", prog_name="analysis-consensus")
def main():
    """Analysis Consensus Engine.

    Reconciles classification results into a single consensus with a
    calibrated confidence, and ranks architecture patterns against it.
    """
    pass


def _apply_config(config: Optional[Path], verbose: bool = False) -> None:
    """Load config if specified, otherwise try to find one."""
    config_path = config or find_config_file()
    if config_path:
        try:
            load_config(config_path)
            if verbose:
                console.print(f"Loaded config from: {config_path}")
        except Exception as e:
            console.print(f"[yellow]Warning:[/yellow] Could not load config: {escape(str(e))}")
            reset_config()
    else:
        reset_config()


def _read_results(path: str) -> list[Any]:
    """Read one result object, or a list of them, from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


@main.command("process")
@click.argument("result_files", nargs=-1, required=True, type=click.Path(exists=True))
@config_option
@click.option(
    "--no-fallbacks",
    is_flag=True,
    help="Report low-confidence results as-is instead of applying fallbacks"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Output file for JSON results (default: stdout)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show detailed output"
)
@json_output_option
def process_cmd(
    result_files: tuple,
    config: Optional[Path],
    no_fallbacks: bool,
    out: Optional[str],
    verbose: bool,
    json_output: bool,
):
    """Combine one or more classification results into a consensus.

    Each file holds a single result object or a list of them.

    Examples:
        analysis-consensus process files-analysis.json description-analysis.json
        analysis-consensus process results.json --json-output
    """
    _apply_config(config, verbose and not json_output)

    try:
        results = []
        for path in result_files:
            results.extend(_read_results(path))

        cfg = get_config()
        if no_fallbacks:
            cfg = cfg.model_copy(update={
                "processor": cfg.processor.model_copy(update={"enable_fallbacks": False}),
            })

        processor = AnalysisProcessor(cfg)
        if len(results) == 1:
            processed = processor.process(results[0])
        else:
            processed = processor.process_many(results)

        if json_output:
            output_json(processed, out)
        else:
            display_processed(processed, verbose)
            if out:
                output_json(processed, out)
                console.print(f"\n[green]Results saved to {out}[/green]")

        if processed.report.confidence_level == ConfidenceLevel.ERROR:
            sys.exit(1)

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("validate")
@click.argument("result_file", type=click.Path(exists=True))
@json_output_option
def validate_cmd(result_file: str, json_output: bool):
    """Validate a single classification result file.

    Exits with status 1 when the result has hard issues.

    Example:
        analysis-consensus validate result.json
    """
    try:
        with open(result_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    report = ResultValidator().validate(data)

    if json_output:
        print(report.model_dump_json(indent=2))
    else:
        if report.is_valid:
            console.print(f"[green]✓ Result valid: {result_file}[/green]")
        else:
            console.print(f"[red]✗ Result invalid: {result_file}[/red]")
        display_report(report)

    sys.exit(0 if report.is_valid else 1)


@main.command("match")
@click.option(
    "--result", "-r",
    "result_file",
    required=True,
    type=click.Path(exists=True),
    help="Path to a classification result JSON file"
)
@click.option(
    "--catalog", "-c",
    required=True,
    type=click.Path(exists=True),
    help="Path to a pattern catalog (JSON or YAML)"
)
@click.option(
    "--cost-priority",
    type=click.IntRange(1, 5),
    default=3,
    show_default=True,
    help="How much low cost matters (1-5)"
)
@click.option(
    "--complexity-tolerance",
    type=click.IntRange(1, 5),
    default=3,
    show_default=True,
    help="How much operational complexity is acceptable (1-5)"
)
@click.option(
    "--performance",
    type=click.IntRange(1, 5),
    default=3,
    show_default=True,
    help="How much scalability and availability matter (1-5)"
)
@click.option(
    "--max-matches", "-n",
    default=5,
    type=int,
    help="Maximum number of matches to show"
)
@config_option
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show detailed output"
)
@json_output_option
def match_cmd(
    result_file: str,
    catalog: str,
    cost_priority: int,
    complexity_tolerance: int,
    performance: int,
    max_matches: int,
    config: Optional[Path],
    verbose: bool,
    json_output: bool,
):
    """Rank catalog patterns against a classification result.

    The result is processed first, so low-confidence input gets the same
    fallbacks as the process command.

    Examples:
        analysis-consensus match -r result.json -c samples/pattern-catalog.yaml
        analysis-consensus match -r result.json -c catalog.json --cost-priority 5 -n 3
    """
    _apply_config(config, verbose and not json_output)

    try:
        cfg = get_config()
        pattern_catalog = load_catalog(catalog)

        results = _read_results(result_file)
        processor = AnalysisProcessor(cfg)
        processed = processor.process_many(results) if len(results) > 1 else processor.process(results[0])
        if processed.result is None or processed.report.confidence_level == ConfidenceLevel.ERROR:
            console.print("[red]Error: result could not be processed[/red]")
            display_report(processed.report)
            sys.exit(1)

        scorer = PatternScorer(
            pattern_catalog,
            weights=ScoringWeights.from_config(cfg.pattern_weights),
        )
        preferences = UserPreferences(
            cost_priority=cost_priority,
            complexity_tolerance=complexity_tolerance,
            performance_requirements=performance,
        )
        matches = scorer.match_patterns(processed.result, preferences)[:max_matches]

        if json_output:
            print(json.dumps([m.model_dump(mode="json") for m in matches], indent=2))
        else:
            display_matches(matches, verbose)

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@main.command("init-config")
@click.option(
    "--out", "-o",
    type=click.Path(),
    default="consensus-config.yaml",
    help="Output path for the configuration file"
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing config file"
)
def init_config_cmd(out: str, force: bool):
    """Generate a default configuration file.

    Example:
        analysis-consensus init-config --out my-config.yaml
    """
    from .config import save_default_config

    out_path = Path(out)
    if out_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out_path)
        console.print(f"[green]✓[/green] Config file created: {out}")
        console.print("\nThis file configures:")
        console.print("  • pattern_weights - How much each criterion contributes to a pattern match")
        console.print("  • cache - Result cache size and time-to-live")
        console.print("  • processor - Whether caching and fallbacks are enabled")
        console.print("\nConfig is looked up in this order:")
        console.print("  1. ANALYSIS_CONSENSUS_CONFIG environment variable")
        console.print("  2. ./consensus-config.yaml (current directory)")
        console.print("  3. ~/.config/analysis-consensus/config.yaml")
    except Exception as e:
        console.print(f"[red]Error creating config:[/red] {escape(str(e))}")
        sys.exit(1)


def output_json(processed: ProcessedResult, out_path: Optional[str]):
    """Output processed result as JSON."""
    json_str = processed.model_dump_json(indent=2)

    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(json_str)
    else:
        print(json_str)


def display_processed(processed: ProcessedResult, verbose: bool):
    """Display a processed result in formatted text."""
    report = processed.report
    color = LEVEL_COLORS.get(report.confidence_level, "white")
    result = processed.result

    if result is None:
        console.print(Panel(
            f"Confidence: [{color}]{report.confidence_level.value}[/{color}]",
            title="Consensus",
        ))
        display_report(report)
        return

    framework = result.framework
    app_type = result.app_type
    infrastructure = result.infrastructure
    confidence = f"{result.confidence:.0%}" if result.confidence is not None else "n/a"

    lines = [
        f"Framework: [bold cyan]{escape(framework.id) if framework else 'n/a'}[/bold cyan]"
        + (" [dim](fallback)[/dim]" if framework and framework.fallback else ""),
        f"App Type: [bold cyan]{escape(app_type.id) if app_type else 'n/a'}[/bold cyan]"
        + (" [dim](fallback)[/dim]" if app_type and app_type.fallback else ""),
        f"Complexity: {infrastructure.complexity if infrastructure else 'n/a'}",
        f"Confidence: [{color}]{confidence} ({report.confidence_level.value})[/{color}]",
        f"Sources: {result.sources}",
    ]
    if result.fallbacks_applied:
        lines.append(f"Fallbacks: {escape(', '.join(result.fallbacks_applied))}")

    console.print(Panel("\n".join(lines), title="Consensus"))

    if infrastructure and infrastructure.requirements:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Requirement", style="cyan")
        table.add_column("Required")
        table.add_column("Confidence", justify="right")
        if verbose:
            table.add_column("Sources", justify="right")

        for name, signal in infrastructure.requirements.items():
            row = [
                escape(name),
                "[green]yes[/green]" if signal.required else "no",
                f"{signal.confidence:.0%}",
            ]
            if verbose:
                row.append(str(signal.sources))
            table.add_row(*row)

        console.print(table)

    if verbose and framework and framework.alternatives:
        console.print("\n[bold]Framework Alternatives:[/bold]")
        for alt in framework.alternatives:
            console.print(f"  • {escape(alt.id)} ({alt.confidence:.0%})")

    display_report(report)


def display_report(report: ValidationReport):
    """Display validation issues, warnings and suggestions."""
    if report.issues:
        console.print("\n[bold red]Issues:[/bold red]")
        for issue in report.issues:
            console.print(f"  [red]•[/red] {escape(issue)}")

    if report.warnings:
        console.print("\n[bold yellow]Warnings:[/bold yellow]")
        for warning in report.warnings:
            console.print(f"  [yellow]•[/yellow] {escape(warning)}")

    if report.suggestions:
        console.print("\n[dim]Suggestions:[/dim]")
        for suggestion in report.suggestions:
            console.print(f"  [dim]• {escape(suggestion)}[/dim]")


def display_matches(matches: list[ArchitecturePatternMatch], verbose: bool):
    """Display ranked pattern matches."""
    if not matches:
        console.print("[yellow]No patterns matched above the score floor.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold", title="Pattern Matches")
    table.add_column("#", justify="right")
    table.add_column("Pattern", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Suitability", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Rank", justify="right")

    for i, match in enumerate(matches, 1):
        table.add_row(
            str(i),
            escape(match.pattern_name),
            f"{match.score:.0%}",
            f"{match.suitability:.0%}",
            f"{match.confidence:.0%}",
            f"{match.ranking_score:.2f}",
        )

    console.print(table)

    if verbose:
        for match in matches:
            console.print(f"\n[bold cyan]{escape(match.pattern_name)}[/bold cyan] ({escape(match.pattern_id)})")
            for dim in match.dimensions:
                console.print(
                    f"  {dim.dimension}: {dim.raw_score:.2f} x {dim.weight:.2f} - {escape(dim.reasoning)}"
                )
            for reason in match.reasons:
                console.print(f"  [green]•[/green] {escape(reason)}")
            for warning in match.warnings:
                console.print(f"  [yellow]•[/yellow] {escape(warning)}")
