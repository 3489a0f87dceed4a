from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich import print
from rich.markup import escape
from rich.table import Table

from .io.files import read_config, read_population
from .manifest import build_manifest, get_libraries, utc_now
from .packaging import build_zip
from .sampling.config import SamplingConfig
from .sampling.errors import SamplingError

app = typer.Typer(
    add_completion=False,
    help="auditsample - reproducible statistical sampling for audits",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

_CONFIG = typer.Option(None, "--config", help="JSON config file; options below override it")
_METHOD = typer.Option(
    None, "--method", "-m", help="statistical, simple_random, systematic or percentage"
)
_CONFIDENCE = typer.Option(None, "--confidence", help="Confidence level, e.g. 0.95")
_TER = typer.Option(None, "--ter", help="Tolerable error rate, e.g. 0.05")
_EER = typer.Option(None, "--eer", help="Expected error rate, e.g. 0.01")
_SIZE = typer.Option(None, "--size", "-n", help="Explicit sample size")
_PERCENTAGE = typer.Option(None, "--percentage", "-p", help="Sample percentage (0-100)")
_STEP = typer.Option(None, "--step", help="Systematic step (recorded as an override)")
_RANDOM_START = typer.Option(
    None, "--random-start/--no-random-start", help="Random offset for systematic draws"
)
_SEED = typer.Option(None, "--seed", help="Random seed")
_STRATIFY = typer.Option(None, "--stratify", "-s", help="Stratification column (repeatable)")
_ID_COL = typer.Option(None, "--id-col", help="ID column listed in the summary")
_POPULATION = typer.Option(None, "--population-override", help="Population size used for sizing")
_JUSTIFICATION = typer.Option(None, "--justification", help="Justification for overrides")
_COVERAGE = typer.Option(
    False, "--coverage/--no-coverage", help="Give every observed stratum at least one item"
)
_SHEET = typer.Option(None, "--sheet", help="Sheet name for Excel input")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    level = "DEBUG" if verbose else os.environ.get("AUDITSAMPLE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str) -> NoReturn:
    print(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(code=1)


def _input_ext(path: str) -> str:
    """Get extension without dot (csv, tsv, xlsx)."""
    ext = Path(path).suffix.lstrip(".").lower()
    return ext if ext in ("csv", "tsv") else "xlsx"


def _zip_output_path(output_file: str) -> Path:
    """Replace user's extension with .zip."""
    return Path(output_file).with_suffix(".zip")


def _build_config(
    config_file: Optional[str],
    *,
    method: Optional[str] = None,
    confidence: Optional[float] = None,
    ter: Optional[float] = None,
    eer: Optional[float] = None,
    size: Optional[int] = None,
    percentage: Optional[float] = None,
    step: Optional[int] = None,
    random_start: Optional[bool] = None,
    seed: Optional[int] = None,
    stratify: Optional[List[str]] = None,
    id_col: Optional[str] = None,
    population_override: Optional[int] = None,
    justification: Optional[str] = None,
) -> SamplingConfig:
    base = read_config(config_file) if config_file else SamplingConfig()
    changes = {
        "method": method,
        "confidence": confidence,
        "margin": ter,
        "expected_error_rate": eer,
        "sample_size": size,
        "sample_percentage": percentage,
        "systematic_step": step,
        "systematic_random_start": random_start,
        "seed": seed,
        "id_column": id_col,
        "population_override": population_override,
        "override_justification": justification,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if stratify:
        changes["stratify_fields"] = tuple(stratify)
    return base.replace(**changes).validate()


def _required_columns(cfg: SamplingConfig) -> List[str]:
    cols = list(cfg.stratify_fields)
    if cfg.id_column:
        cols.append(cfg.id_column)
    return cols


def _plan_table(plan) -> Table:
    from .sampling.audit import stratum_label

    table = Table(title=f"Sampling plan ({plan.planned_size} of {plan.desired_size} desired)")
    table.add_column("Stratum")
    table.add_column("Population", justify="right")
    table.add_column("Proportional", justify="right")
    table.add_column("Planned", justify="right")
    for a in plan.allocations:
        table.add_row(
            escape(stratum_label(a.stratum)),
            str(a.population_count),
            str(a.original_sample_count),
            str(a.sample_count),
        )
    return table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("size")
def size_cmd(
    population: int = typer.Argument(..., help="Population size"),
    confidence: float = typer.Option(0.95, "--confidence", help="Confidence level"),
    ter: float = typer.Option(0.05, "--ter", help="Tolerable error rate"),
    eer: float = typer.Option(0.01, "--eer", help="Expected error rate"),
):
    """Preview the statistical sample size for a population."""
    from .sampling.stats import calculate_sample_size, z_score

    try:
        n = calculate_sample_size(population, confidence, ter, eer)
    except SamplingError as e:
        _fail(str(e))
    print(f"z = {z_score(confidence):.4f}")
    print(f"Sample size: [bold]{n}[/bold] of {population}")


@app.command("plan")
def plan_cmd(
    input_file: str = typer.Argument(..., help="Population file (csv/tsv/xlsx)"),
    config_file: Optional[str] = _CONFIG,
    method: Optional[str] = _METHOD,
    confidence: Optional[float] = _CONFIDENCE,
    ter: Optional[float] = _TER,
    eer: Optional[float] = _EER,
    size: Optional[int] = _SIZE,
    percentage: Optional[float] = _PERCENTAGE,
    step: Optional[int] = _STEP,
    seed: Optional[int] = _SEED,
    stratify: Optional[List[str]] = _STRATIFY,
    population_override: Optional[int] = _POPULATION,
    coverage: bool = _COVERAGE,
    sheet: Optional[str] = _SHEET,
):
    """Show how the sample would be allocated across strata."""
    from .sampling.plan import add_coverage_overrides, compute_plan

    try:
        cfg = _build_config(
            config_file,
            method=method,
            confidence=confidence,
            ter=ter,
            eer=eer,
            size=size,
            percentage=percentage,
            step=step,
            seed=seed,
            stratify=stratify,
            population_override=population_override,
        )
        df = read_population(input_file, sheet=sheet, required_columns=_required_columns(cfg))
        plan = compute_plan(df.to_dict(orient="records"), cfg)
        if coverage:
            add_coverage_overrides(plan)
    except (ValueError, OSError) as e:
        _fail(str(e))

    print(_plan_table(plan))
    if plan.coverage_overrides:
        print(f"  Coverage overrides: {len(plan.coverage_overrides)}")


@app.command("run")
def run_cmd(
    input_file: str = typer.Argument(..., help="Population file (csv/tsv/xlsx)"),
    output_file: str = typer.Argument(..., help="Output file (written as .zip)"),
    config_file: Optional[str] = _CONFIG,
    method: Optional[str] = _METHOD,
    confidence: Optional[float] = _CONFIDENCE,
    ter: Optional[float] = _TER,
    eer: Optional[float] = _EER,
    size: Optional[int] = _SIZE,
    percentage: Optional[float] = _PERCENTAGE,
    step: Optional[int] = _STEP,
    random_start: Optional[bool] = _RANDOM_START,
    seed: Optional[int] = _SEED,
    stratify: Optional[List[str]] = _STRATIFY,
    id_col: Optional[str] = _ID_COL,
    population_override: Optional[int] = _POPULATION,
    justification: Optional[str] = _JUSTIFICATION,
    coverage: bool = _COVERAGE,
    sheet: Optional[str] = _SHEET,
):
    """Draw the sample and write a reproducibility pack (ZIP)."""
    run_at = utc_now()
    from .sampling.audit import audit_to_bytes, build_sampling_manifest_section
    from .sampling.engine import sample_dataframe
    from .sampling.plan import add_coverage_overrides, compute_plan

    try:
        cfg = _build_config(
            config_file,
            method=method,
            confidence=confidence,
            ter=ter,
            eer=eer,
            size=size,
            percentage=percentage,
            step=step,
            random_start=random_start,
            seed=seed,
            stratify=stratify,
            id_col=id_col,
            population_override=population_override,
            justification=justification,
        )
        df = read_population(input_file, sheet=sheet, required_columns=_required_columns(cfg))
        plan = compute_plan(df.to_dict(orient="records"), cfg)
        if coverage:
            add_coverage_overrides(plan)
        drawn = sample_dataframe(
            df,
            cfg,
            plan,
            file_name=Path(input_file).name,
            sheet_name=sheet,
            generated_at=run_at,
        )
    except (ValueError, OSError) as e:
        _fail(str(e))

    result = drawn.result
    manifest = build_manifest(
        method=cfg.method.value,
        original_filename=Path(input_file).name,
        file_type=Path(input_file).suffix.lstrip("."),
        row_count=len(df),
        column_mapping={"stratify_fields": list(cfg.stratify_fields), "id_column": cfg.id_column},
        config=cfg.to_dict(),
        libraries=get_libraries(),
        timestamp=run_at,
        sheet_name=sheet,
        sampling=build_sampling_manifest_section(result),
    )
    zip_bytes, _ = build_zip(
        manifest=manifest,
        sample_df=drawn.sample_df,
        input_basename=Path(input_file).stem,
        output_ext=_input_ext(input_file),
        summary=result.summary.to_dict(),
        audit_bytes=audit_to_bytes(result),
        excluded_df=drawn.excluded_df,
    )
    out = _zip_output_path(output_file)
    out.write_bytes(zip_bytes)
    print(f"[green]✓[/green] Saved: {out}")
    print(f"  Sampled {len(result.sample)}/{len(df)} rows (seed {cfg.seed})")
    if result.summary.overrides.has_overrides:
        print("  [yellow]Overrides recorded in sampling_summary.json[/yellow]")


if __name__ == "__main__":
    app()
