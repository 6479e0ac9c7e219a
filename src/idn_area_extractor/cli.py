import re
import time
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Annotated

import typer

from idn_area_extractor.compare import diff_against_reference, diff_summary, write_diff
from idn_area_extractor.config import AppConfig, Config, ConfigError, Entity
from idn_area_extractor.extractor import extract_from_pdf, extract_rows, extract_txt_file_rows
from idn_area_extractor.pdf_reader import PdfReaderError
from idn_area_extractor.remote import (
    REFERENCE_FILENAMES,
    RemoteError,
    get_default_reference_path,
    show_version_info,
)
from idn_area_extractor.transformers import ENTITY_ALIASES, get_transformer, resolve_entity
from idn_area_extractor.utils import PageRangeError, format_duration, validate_page_range
from idn_area_extractor.writer import OutputWriter

app = typer.Typer(help="Extract Indonesian area data (regencies, districts, islands, villages).")

RE_OUTPUT_NAME = re.compile(r"^[A-Za-z0-9_\- ]+$")
SUPPORTED_SUFFIXES = (".pdf", ".txt")


def version_option_callback(value: bool) -> None:
    if value:
        package_name = "idn-area-extractor"
        try:
            typer.echo(f"{package_name}: {version(package_name)}")
            raise typer.Exit()
        except PackageNotFoundError:
            typer.echo(
                (
                    f"{package_name}: Version information not available. "
                    "Make sure the package is installed."
                )
            )
            raise typer.Exit(1)


def _fail(message: str) -> typer.Exit:
    typer.echo(f"❌ {message}", err=True)
    return typer.Exit(code=1)


def _validate_inputs(
    entity: str,
    file_path: Path,
    page_range: str | None,
    output: str | None,
    destination: Path,
    save_raw: bool,
) -> Entity:
    resolved = resolve_entity(entity)
    if resolved is None:
        choices = ", ".join([*ENTITY_ALIASES.values(), *ENTITY_ALIASES])
        raise _fail(f"Unknown data entity '{entity}'. Use one of: {choices}.")
    if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise _fail("The input file must be a PDF or a TXT file.")
    is_pdf = file_path.suffix.lower() == ".pdf"
    if page_range is not None:
        if not is_pdf:
            raise _fail("A page range can only be used with a PDF file.")
        if not validate_page_range(page_range):
            raise _fail("Invalid page range format. Use formats like '1,3,4' or '1-4,6'.")
    if save_raw and not is_pdf:
        raise _fail("Raw data can only be saved from a PDF file.")
    if output is not None:
        if not output.strip():
            raise _fail("Output file name cannot be empty.")
        if not RE_OUTPUT_NAME.match(output):
            raise _fail("Output file name contains forbidden character(s).")
    if destination.exists() and not destination.is_dir():
        raise _fail("The destination must be a directory.")
    return resolved


def _read_rows(
    file_path: Path,
    page_range: str | None,
    config: Config,
    *,
    raw_path: Path | None,
    silent: bool,
) -> list[str]:
    if file_path.suffix.lower() != ".pdf":
        rows = extract_txt_file_rows(file_path, trim=True, remove_empty=True)
        if not silent:
            typer.echo(f"📄 {len(rows)} rows read from {file_path.name}")
        return rows

    try:
        result = extract_from_pdf(
            file_path,
            page_range,
            line_break_threshold=config.extract.line_break_threshold,
            show_progress=not silent,
        )
    except (PageRangeError, PdfReaderError) as e:
        raise _fail(str(e))

    text = "\n".join(result.page_contents)
    if raw_path is not None:
        raw_path.write_text(text, encoding="utf-8")

    rows = extract_rows(text, trim=True, remove_empty=True)
    if not silent:
        typer.echo(
            f"📄 {result.pages_extracted}/{result.num_pages} pages extracted "
            f"(pages {result.page_range}, {len(rows)} rows)"
        )
    return rows


def _compare(
    entity: Entity,
    csv_path: Path,
    reference: Path | None,
    *,
    refresh_reference: bool,
    silent: bool,
) -> None:
    try:
        reference_dir = reference or get_default_reference_path(
            refresh_cache=refresh_reference, show_progress=not silent
        )
    except RemoteError as e:
        raise _fail(str(e))

    reference_csv = reference_dir / REFERENCE_FILENAMES[entity]
    if not reference_csv.is_file():
        raise _fail(f"Reference file not found: {reference_csv}")

    diff_lines = diff_against_reference(csv_path, reference_csv)
    diff_path = csv_path.with_suffix(".diff")
    write_diff(diff_lines, diff_path)

    if not silent:
        summary = diff_summary(diff_lines)
        if summary.has_changes:
            typer.echo(
                f"🔍 {summary.added} rows added, {summary.removed} rows removed "
                f"compared to the reference data"
            )
        else:
            typer.echo("🔍 No differences with the reference data")
        typer.echo(f"📝 Comparison saved to: {diff_path.resolve()}")


@app.command()
def extract(
    entity: Annotated[
        str,
        typer.Argument(help="Data to extract: regency, district, island or village"),
    ],
    file_path: Annotated[
        Path,
        typer.Argument(
            exists=True, file_okay=True, dir_okay=False, help="Path to the PDF or TXT file"
        ),
    ],
    page_range: Annotated[
        str | None,
        typer.Option("--range", "-r", help="Specific pages to extract, e.g., '1-2,5,7-10'"),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Name of the output CSV file (without extension)"),
    ] = None,
    destination: Annotated[
        Path,
        typer.Option(
            "--destination",
            "-d",
            dir_okay=True,
            file_okay=False,
            help="Destination folder for the output files",
            show_default=False,
        ),
    ] = Path.cwd(),
    save_raw: Annotated[
        bool,
        typer.Option("--save-raw", "-R", help="Save the extracted raw text into a .txt file"),
    ] = False,
    compare: Annotated[
        bool,
        typer.Option("--compare", "-c", help="Compare the result with the reference data"),
    ] = False,
    reference: Annotated[
        Path | None,
        typer.Option(
            "--reference",
            exists=True,
            file_okay=False,
            dir_okay=True,
            help="Local directory of reference CSV files (skips the download)",
        ),
    ] = None,
    refresh_reference: Annotated[
        bool,
        typer.Option("--refresh-reference", help="Download the reference data again"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            exists=True,
            file_okay=True,
            dir_okay=False,
            help="Path to the configuration TOML file",
        ),
    ] = None,
    silent: Annotated[
        bool,
        typer.Option("--silent", help="Disable all logs except errors"),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_option_callback,
            is_eager=True,
            help="Show the version of this package",
        ),
    ] = None,
) -> None:
    """
    Extract regencies, districts, islands or villages from a PDF (or its raw text)
    into a CSV file.
    """
    resolved = _validate_inputs(entity, file_path, page_range, output, destination, save_raw)
    destination.mkdir(parents=True, exist_ok=True)

    if not silent:
        typer.echo("\n🏁 Program started")
    start_time = time.time()

    try:
        config = AppConfig.load(config_path)
    except ConfigError as exc:
        raise _fail(f"Configuration error: {exc}")

    data_config = config.data[resolved]
    output_name = output or data_config.filename
    raw_path = destination / f"raw-{output_name}.txt" if save_raw else None

    rows = _read_rows(file_path, page_range, config, raw_path=raw_path, silent=silent)

    transformer = get_transformer(
        resolved,
        timeout=config.extract.regex_timeout,
        column_width=config.extract.village_column_width,
    )
    records = transformer.transform_many(rows)

    csv_path = destination / f"{output_name}.csv"
    with OutputWriter(
        csv_path, header=transformer.headers, batch_size=data_config.batch_size
    ) as writer:
        writer.add(transformer.to_csv_rows(records))

    if compare:
        _compare(
            resolved,
            csv_path,
            reference,
            refresh_reference=refresh_reference,
            silent=silent,
        )

    duration = time.time() - start_time

    if not records:
        typer.echo("⚠️ No matching data found.", err=True)
        typer.echo("Ensure the file contains the selected data in the expected format.", err=True)
        raise typer.Exit(code=1)

    if not silent:
        typer.echo(f"✅ Extraction completed in {format_duration(duration)}")
        typer.echo(f"🧾 Number of {resolved} rows extracted: {len(records)}")
        typer.echo(f"📁 Output saved to: {csv_path.resolve()}")
        if raw_path is not None:
            typer.echo(f"📁 Raw text saved to: {raw_path.resolve()}")


@app.command()
def reference() -> None:
    """Show information about the cached reference data."""
    show_version_info()


if __name__ == "__main__":
    app()
