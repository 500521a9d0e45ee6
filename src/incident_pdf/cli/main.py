"""CLI for incident-pdf: generate / check-template / suggest-overrides / list-fields."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from incident_pdf.core.config import AppSettings
from incident_pdf.core.logging_config import setup_logging
from incident_pdf.core.startup_checks import validate_settings
from incident_pdf.diagnostics import group_by_category
from incident_pdf.exceptions import IncidentPdfError
from incident_pdf.mapping.discovery import render_override_snippet, suggest_overrides
from incident_pdf.mapping.registry import resolve_field_map
from incident_pdf.models import AggregatedIncidentRecord, GenerationResult
from incident_pdf.pdf.template import FormTemplate
from incident_pdf.pipeline.generator import IncidentReportGenerator

app = typer.Typer(name="incident-pdf", help="Assemble incident-report PDFs from aggregated records")
console = Console()


def _build_settings(
    template: Optional[Path] = None,
    engine: Optional[str] = None,
    insertion_point: Optional[int] = None,
    verbose: bool = False,
) -> AppSettings:
    """Build settings, overriding env defaults with CLI flags."""
    settings = AppSettings()
    if template is not None:
        settings.template = settings.template.model_copy(update={"path": template})
    if engine:
        if engine not in ("chromium", "reportlab"):
            raise typer.BadParameter(f"unknown engine '{engine}'", param_hint="--engine")
        settings.render = settings.render.model_copy(update={"engine": engine})
    if insertion_point is not None:
        settings.assembly = settings.assembly.model_copy(update={"insertion_point": insertion_point})
    if verbose:
        settings.observability = settings.observability.model_copy(update={"log_level": "DEBUG"})
    setup_logging(settings.observability)
    return settings


def _load_template(path: Path) -> FormTemplate:
    try:
        return FormTemplate.load(path)
    except IncidentPdfError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


def _load_record(record_file: Path) -> AggregatedIncidentRecord:
    try:
        raw = json.loads(record_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{record_file} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise typer.BadParameter(f"Expected a JSON object in {record_file}")
    try:
        return AggregatedIncidentRecord.model_validate(raw)
    except ValidationError as exc:
        raise typer.BadParameter(f"{record_file} is not a valid incident record: {exc}") from exc


def _print_result(result: GenerationResult) -> None:
    console.print(
        f"[green]{result.page_count} pages[/green] "
        f"({result.base_page_count} base + {result.appendix_page_count} appendix), "
        f"{result.size_kb:.1f} KB, job {result.job_id}"
    )
    if not result.diagnostics:
        return
    table = Table(title="Diagnostics")
    table.add_column("Category", style="cyan")
    table.add_column("Field / Section", style="green")
    table.add_column("Message", max_width=70)
    for category, diagnostics in group_by_category(result.diagnostics).items():
        for diag in diagnostics:
            table.add_row(category.value, diag.field_name or diag.section_key or "-", diag.message)
    console.print(table)


@app.command()
def generate(
    record_file: Path = typer.Argument(..., help="JSON file with the aggregated incident record"),
    output: Path = typer.Option(Path("incident-report.pdf"), "--output", "-o", help="Output PDF path"),
    template: Optional[Path] = typer.Option(None, "--template", help="Base fillable template"),
    engine: Optional[str] = typer.Option(None, "--engine", help="chromium or reportlab"),
    insertion_point: Optional[int] = typer.Option(None, "--insertion-point", help="Appendix goes after this many base pages"),
    job_id: Optional[str] = typer.Option(None, "--job-id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Generate one incident-report PDF."""
    settings = _build_settings(template, engine, insertion_point, verbose)
    try:
        validate_settings(settings)
    except ValueError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    record = _load_record(record_file)
    console.print(f"[bold]Generating report for record {record.record_id or '(unnamed)'}[/bold]")

    async def _run() -> GenerationResult:
        async with IncidentReportGenerator.from_settings(settings) as generator:
            return await generator.generate(record, job_id=job_id)

    try:
        result = asyncio.run(_run())
    except IncidentPdfError as exc:
        retry = " (retryable)" if exc.retryable else ""
        console.print(f"[red]{type(exc).__name__}{retry}:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    output.write_bytes(result.pdf)
    console.print(f"[green]Report saved to {output}[/green]")
    _print_result(result)


@app.command("check-template")
def check_template(
    template: Path = typer.Argument(..., help="Fillable template to check"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Resolve the field map against a template and report drift."""
    _build_settings(template=template, verbose=verbose)
    form = _load_template(template)
    resolved = resolve_field_map(form, strict=False)

    console.print(f"[bold]{form.name}[/bold]: {form.page_count} pages, {len(form.fields)} fields")
    console.print(
        f"Mapped: {len(resolved.mappings)}  "
        f"Witness slots: {resolved.slot_count('witnesses')}  "
        f"Vehicle slots: {resolved.slot_count('other_vehicles')}  "
        f"Overrides v{resolved.overrides_version}: {len(resolved.applied_overrides)} applied"
    )

    if resolved.page_mismatches:
        table = Table(title="Fields on unexpected pages")
        table.add_column("Field", style="cyan")
        table.add_column("Expected")
        table.add_column("Actual")
        for mismatch in resolved.page_mismatches:
            table.add_row(mismatch.field_name, str(mismatch.expected_page), str(mismatch.actual_page))
        console.print(table)

    if resolved.unresolved:
        console.print(f"[red]{len(resolved.unresolved)} mapped field(s) missing from template:[/red]")
        for name in resolved.unresolved:
            console.print(f"  - {name}")
        console.print("Run [bold]incident-pdf suggest-overrides[/bold] for likely matches.")
        raise typer.Exit(code=1)
    console.print("[green]Field map resolves cleanly.[/green]")


@app.command("suggest-overrides")
def suggest_overrides_cmd(
    template: Path = typer.Argument(..., help="Fillable template to check"),
    cutoff: float = typer.Option(0.75, min=0.0, max=1.0, help="Minimum similarity ratio"),
    limit: int = typer.Option(3, min=1, help="Candidates per field"),
) -> None:
    """Propose FIELD_NAME_OVERRIDES entries for unresolved fields."""
    _build_settings(template=template)
    form = _load_template(template)
    resolved = resolve_field_map(form, strict=False)
    if not resolved.unresolved:
        console.print("[green]Nothing to suggest; every mapped field resolves.[/green]")
        return

    mapped = resolved.target_fields
    unclaimed = [name for name in form.field_names if name not in mapped]
    suggestions = suggest_overrides(resolved.unresolved, unclaimed, limit=limit, cutoff=cutoff)

    table = Table(title="Override suggestions")
    table.add_column("Intended name", style="cyan")
    table.add_column("Candidates", style="green")
    for suggestion in suggestions:
        candidates = ", ".join(f"{name} ({score:.2f})" for name, score in suggestion.candidates)
        table.add_row(suggestion.intended_name, candidates or "-")
    console.print(table)
    console.print("\n[bold]Draft entries for overrides.py:[/bold]")
    console.print(render_override_snippet(suggestions), markup=False, highlight=False)


@app.command("list-fields")
def list_fields(
    template: Path = typer.Argument(..., help="Fillable template to inspect"),
    page: Optional[int] = typer.Option(None, "--page", min=1, help="Only fields on this page (1-based)"),
) -> None:
    """List the template's form fields with kind and page."""
    form = _load_template(template)
    table = Table(title=f"{form.name} fields")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Page")
    table.add_column("On state")
    fields = form.fields_on_page(page - 1) if page else list(form.fields.values())
    for tf in sorted(fields, key=lambda f: ((f.page_index or 0), f.name)):
        page_label = str(tf.page_index + 1) if tf.page_index is not None else "-"
        table.add_row(tf.name, tf.kind.value, page_label, tf.on_state if tf.is_checkbox else "")
    console.print(table)
    console.print(f"{len(fields)} field(s)")


if __name__ == "__main__":
    app()
