"""Command-line interface for kpi-engine."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__

if TYPE_CHECKING:
    from .engine import EvaluationEngine
    from .models import EvaluationResult

app = typer.Typer(
    name="kpi-engine",
    help="KPI detection and scoring for open-ended certification exam answers.",
    no_args_is_help=True,
)
console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_engine(config_path: Optional[str], patterns: Optional[str] = None) -> EvaluationEngine:
    """Load the configuration (or defaults) and return an engine with patterns loaded."""
    from .config import EngineConfig, load_config
    from .engine import EvaluationEngine
    from .utils import setup_logging

    setup_logging()

    config = load_config(config_path) if config_path else EngineConfig()
    if patterns:
        config.training.patterns_file = patterns
    engine = EvaluationEngine(config)
    engine.load_patterns()
    return engine


def _read_json_list(path: str) -> list[Any]:
    file = Path(path)
    if not file.is_file():
        raise FileNotFoundError(f"File not found: {file}")
    data = json.loads(file.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{file} must contain a JSON list")
    return data


def _print_result(result: EvaluationResult, rules: dict[str, str] | None = None) -> None:
    table = Table(title=f"KPI evaluation ({result.source})")
    table.add_column("KPI", style="cyan")
    table.add_column("Status", style="bold")
    if rules is not None:
        table.add_column("Rule", style="dim")

    for kpi in result.detected_kpis:
        row = [kpi, "[green]detected[/green]"]
        if rules is not None:
            row.append(rules.get(kpi, "-"))
        table.add_row(*row)
    for kpi in result.missing_kpis:
        row = [kpi, "[red]missing[/red]"]
        if rules is not None:
            row.append("-")
        table.add_row(*row)

    console.print(table)
    console.print(f"\n[bold]Score:[/bold] {result.score}/{result.max_score}")
    console.print(f"[bold]Feedback:[/bold] {result.feedback}\n")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def init(
    path: str = typer.Option(".", "--path", help="Directory to write engine.yaml into"),
) -> None:
    """Write a default engine.yaml configuration."""
    from .config import create_default_config

    target_dir = Path(path)
    target_dir.mkdir(parents=True, exist_ok=True)
    config_path = target_dir / "engine.yaml"
    if config_path.exists():
        console.print(f"[bold red]Error:[/bold red] {config_path} already exists")
        raise typer.Exit(code=1)

    config_path.write_text(create_default_config(), encoding="utf-8")
    console.print(f"\n[bold green]Configuration written to {config_path}[/bold green]\n")


@app.command()
def evaluate(
    answer: Optional[str] = typer.Option(None, "--answer", "-a", help="Answer text"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Read the answer from a file"),
    kpi: List[str] = typer.Option(..., "--kpi", "-k", help="Target KPI name (repeatable)"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Feedback language: fi or en"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to engine.yaml"),
    local: bool = typer.Option(False, "--local", help="Skip the remote evaluator"),
    explain: bool = typer.Option(False, "--explain", help="Show which local rule matched"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Evaluate a single answer against its KPIs."""
    try:
        if file is not None:
            answer_path = Path(file)
            if not answer_path.is_file():
                raise FileNotFoundError(f"Answer file not found: {answer_path}")
            answer = answer_path.read_text(encoding="utf-8")
        if answer is None:
            console.print("[bold red]Error:[/bold red] provide --answer or --file")
            raise typer.Exit(code=1)

        engine = _load_engine(config)
        if local:
            result = engine.evaluate_local(answer, kpi, language)
        else:
            result = engine.evaluate(answer, kpi, language)

        if as_json:
            console.print_json(json.dumps(asdict(result), ensure_ascii=False))
        else:
            rules = None
            if explain and result.source == "local":
                rules = engine.detector.explain(answer, kpi)
            elif explain:
                console.print("[dim]Rules are only shown for local evaluation.[/dim]")
            _print_result(result, rules)

    except typer.Exit:
        raise
    except FileNotFoundError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"\n[bold red]Evaluation failed:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def batch(
    items: str = typer.Option(..., "--items", help="JSON list of exam items"),
    output: str = typer.Option("evaluation_results.json", "--output", "-o", help="Results file"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Feedback language: fi or en"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to engine.yaml"),
) -> None:
    """Evaluate every answered item of an exam attempt."""
    try:
        engine = _load_engine(config)
        summary = engine.evaluate_attempt(_read_json_list(items), language)

        out = Path(output)
        out.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "total_score": summary.total_score,
            "max_score": summary.max_score,
            "skipped": summary.skipped,
            "results": {qid: asdict(r) for qid, r in summary.results.items()},
        }
        out.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

        table = Table(title="Attempt summary")
        table.add_column("Question", style="cyan")
        table.add_column("Score", justify="right", style="bold")
        table.add_column("Detected", justify="right")
        table.add_column("Source", style="dim")
        for qid, result in summary.results.items():
            table.add_row(
                qid,
                f"{result.score}/{result.max_score}",
                str(len(result.detected_kpis)),
                result.source,
            )
        console.print(table)
        console.print(
            f"\n[bold green]Total {summary.total_score}/{summary.max_score}[/bold green]"
            f" ({len(summary.skipped)} skipped), results saved to [cyan]{out}[/cyan]\n"
        )

    except FileNotFoundError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"\n[bold red]Batch evaluation failed:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def train(
    samples: Optional[str] = typer.Option(None, "--samples", help="JSON list of sample answers"),
    examples: Optional[str] = typer.Option(None, "--examples", help="JSON list of training examples"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Pattern file to write"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to engine.yaml"),
) -> None:
    """Learn KPI patterns from curated answers and save them."""
    try:
        engine = _load_engine(config, patterns=output)
        sample_data = _read_json_list(samples) if samples else []
        example_data = _read_json_list(examples) if examples else []

        report = engine.train(sample_data, example_data)
        saved = engine.save_patterns()

        console.print(
            f"\n[bold green]Training complete:[/bold green] "
            f"{report.samples_used} samples, {report.examples_used} examples, "
            f"{report.fragments_added} new fragments\n"
            f"Patterns saved to [cyan]{saved}[/cyan]\n"
        )

    except FileNotFoundError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"\n[bold red]Training failed:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def status(
    patterns: Optional[str] = typer.Option(None, "--patterns", help="Pattern file to inspect"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to engine.yaml"),
) -> None:
    """Show the learned model status."""
    try:
        engine = _load_engine(config, patterns=patterns)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    model_status = engine.get_model_status()
    table = Table(title="Pattern model")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Trained", "yes" if model_status.is_trained else "no")
    table.add_row("Patterns", str(model_status.patterns_count))
    table.add_row("Feedback templates", str(model_status.feedback_templates_count))
    table.add_row("KPIs with learned patterns", str(len(model_status.learned_kpis)))
    console.print(table)


@app.command()
def check(
    config: str = typer.Option("engine.yaml", "--config", help="Path to engine.yaml"),
) -> None:
    """Check the configuration and the remote credential."""
    table = Table(title="kpi-engine check")
    table.add_column("Item", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Details", style="dim")

    all_ok = True

    try:
        from .config import load_config

        cfg = load_config(config)
        table.add_row("Config file", "[green]OK[/green]", str(config))
    except Exception as e:
        cfg = None
        table.add_row("Config file", "[red]FAIL[/red]", str(e))
        all_ok = False

    if cfg is None:
        console.print()
        console.print(table)
        raise typer.Exit(code=1)

    if not cfg.remote.enabled:
        table.add_row("Remote evaluator", "[yellow]OFF[/yellow]", "local evaluation only")
    elif cfg.remote.resolve_api_key():
        table.add_row(
            "Remote evaluator",
            "[green]OK[/green]",
            f"{cfg.remote.model} ({cfg.remote.api_base})",
        )
    else:
        table.add_row(
            "Remote evaluator",
            "[yellow]WARN[/yellow]",
            f"no API key (remote.api_key or ${cfg.remote.api_key_env}), local fallback only",
        )
        all_ok = False

    patterns_path = Path(cfg.training.patterns_file)
    if patterns_path.is_file():
        table.add_row("Pattern file", "[green]OK[/green]", str(patterns_path))
    else:
        table.add_row("Pattern file", "[yellow]WARN[/yellow]", f"not found: {patterns_path}")

    console.print()
    console.print(table)
    if all_ok:
        console.print("\n[bold green]All checks passed![/bold green]\n")
    else:
        console.print("\n[bold yellow]Some items need attention.[/bold yellow]\n")
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show the kpi-engine version."""
    console.print(f"kpi-engine [bold]{__version__}[/bold]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point referenced from pyproject.toml."""
    app()
