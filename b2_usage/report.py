from __future__ import annotations
"""Renders scan results as text, JSON or CSV."""
import json

from .format_utils import format_bytes, format_count, format_decimal
from .models import ScanResult

OUTPUT_FORMATS = ("text", "json", "csv")
DEFAULT_FORMAT = "text"
FOLDER_COLUMN_WIDTH = 40
CSV_HEADER = "folder,size_bytes,file_count"


def render_text(result: ScanResult, elapsed: float) -> str:
    lines = [
        f"{folder.folder:<{FOLDER_COLUMN_WIDTH}}"
        f"{format_bytes(folder.size_bytes)} in {format_count(folder.file_count)} files"
        for folder in result.folders
    ]
    lines.extend(
        [
            "",
            "Summary",
            f"Total folders: {len(result.folders)}",
            f"Total files:   {format_count(result.total_files)}",
            f"Total size:    {format_bytes(result.total_bytes)}",
            f"Elapsed time:  {format_decimal(elapsed)} seconds",
        ]
    )
    return "\n".join(lines) + "\n"


def render_json(bucket_name: str, prefix: str, result: ScanResult, elapsed: float) -> str:
    payload = {
        "bucket": bucket_name,
        "prefix": prefix,
        "folders": [folder.as_dict() for folder in result.folders],
        "total_files": result.total_files,
        "total_size_bytes": result.total_bytes,
        "elapsed_seconds": round(elapsed, 2),
    }
    return json.dumps(payload, indent=4) + "\n"


def render_csv(result: ScanResult) -> str:
    # Folder names are written verbatim; a comma in a name shifts the columns.
    rows = [CSV_HEADER]
    rows.extend(
        f"{folder.folder},{folder.size_bytes},{folder.file_count}" for folder in result.folders
    )
    return "\n".join(rows) + "\n"


def render_report(
    output_format: str,
    *,
    bucket_name: str,
    prefix: str,
    result: ScanResult,
    elapsed: float,
) -> str:
    """Render ``result`` in ``output_format``, falling back to text."""
    if output_format == "json":
        return render_json(bucket_name, prefix, result, elapsed)
    if output_format == "csv":
        return render_csv(result)
    return render_text(result, elapsed)
