from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
import yaml

from src.common.errors import PatchError
from src.validator.validator import validate_sequence

from .sequence import apply_patch

app = typer.Typer(help="Apply and validate JSON patches against JSON or YAML documents.")


def _load(path: Path, label: str) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"cannot read {label} file {path}: {exc}") from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise typer.BadParameter(f"{label} file {path} is not valid JSON/YAML: {exc}") from exc


@app.command()
def apply(
    document: Path = typer.Option(
        ...,
        "--document",
        "-d",
        help="Path to the JSON or YAML document to patch.",
    ),
    patch: Path = typer.Option(
        ...,
        "--patch",
        "-p",
        help="Path to the JSON or YAML patch (a list of operations).",
    ),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Where to write the patched document (defaults to stdout).",
    ),
    validate: bool = typer.Option(
        True,
        "--validate/--no-validate",
        help="Validate each operation before it is applied.",
    ),
    allow_proto: bool = typer.Option(
        False,
        "--allow-proto",
        help="Permit `__proto__` and `constructor/prototype` path components.",
    ),
) -> None:
    doc = _load(document, "document")
    operations = _load(patch, "patch")
    try:
        results = apply_patch(
            doc,
            operations,
            validate=validate,
            mutate=False,
            ban_prototype_modifications=not allow_proto,
        )
    except PatchError as exc:
        typer.secho(f"Patch failed ({exc.name}): {exc.reason}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    payload = json.dumps(results.new_document, indent=2)
    if out is None:
        typer.echo(payload)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(payload + "\n", encoding="utf-8")
    typer.echo(f"Applied {len(results)} operation(s) to {out.resolve()}", err=True)


@app.command()
def validate(
    patch: Path = typer.Option(
        ...,
        "--patch",
        "-p",
        help="Path to the JSON or YAML patch to validate.",
    ),
    document: Optional[Path] = typer.Option(
        None,
        "--document",
        "-d",
        help="Optional document to dry-run the patch against.",
    ),
) -> None:
    operations = _load(patch, "patch")
    doc = _load(document, "document") if document is not None else None
    error = validate_sequence(operations, doc)
    if error is not None:
        location = f" at operation {error.index}" if error.index is not None else ""
        typer.secho(f"invalid{location} ({error.name}): {error.reason}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo("ok")


if __name__ == "__main__":  # pragma: no cover
    app()
