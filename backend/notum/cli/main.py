"""CLI entrypoint for Notum."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="notum", help="Notum command-line interface")
resources_app = typer.Typer(name="resources")
app.add_typer(resources_app, name="resources")

DEFAULT_HOST = "http://127.0.0.1:5180"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("NOTUM_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def serve(
    bind: str = typer.Option("127.0.0.1", "--bind", help="Interface to listen on"),
    port: int = typer.Option(5180, "--port", help="Port to listen on"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("notum.app:create_app", factory=True, host=bind, port=port)


@resources_app.command("list")
def list_resources(
    type: Optional[str] = typer.Option(None, "--type", help="Only page, video or pdf resources"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List captured resources, newest first."""
    params = {"type": type} if type else None
    resp = _request("GET", "/resources", host=host, params=params)
    typer.echo(json.dumps(resp.json(), indent=2))


@resources_app.command("search")
def search_resources(
    q: str = typer.Argument(..., help="Substring to look for"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search resources by title, content or url."""
    resp = _request("GET", "/resources/search", host=host, params={"q": q})
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def due(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show flashcards due for review."""
    resp = _request("GET", "/flashcards/due", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def review(
    flashcard_id: str = typer.Argument(..., help="Flashcard identifier"),
    correct: bool = typer.Option(..., "--correct/--incorrect", help="Whether the answer was right"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Record a review answer."""
    resp = _request("POST", f"/flashcards/{flashcard_id}/review", host=host, json={"correct": correct})
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def export(
    out: Path = typer.Option(..., "--out", help="File or directory to write the export to"),
    track: Optional[List[str]] = typer.Option(None, "--track", help="Track id to export; repeatable"),
    zip: bool = typer.Option(False, "--zip", help="Write a ZIP archive instead of JSON"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Export study tracks with their resources, highlights and flashcards."""
    body = {"trackIds": track or None, "format": "zip" if zip else "json"}
    resp = _request("POST", "/export", host=host, json=body)
    target = out.expanduser()
    if target.is_dir():
        filename = resp.headers.get("content-disposition", "").partition("filename=")[2].strip('"')
        target = target / (filename or ("notum_export.zip" if zip else "notum_data.json"))
    target.write_bytes(resp.content)
    typer.echo(str(target))


@app.command("import")
def import_file(
    path: Path = typer.Argument(..., help="JSON bundle or ZIP archive"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Import a previously exported bundle."""
    source = path.expanduser()
    suffix = source.suffix.lower()
    if suffix not in {".json", ".zip"}:
        typer.echo("Unsupported file type. Please use JSON or ZIP files.", err=True)
        raise typer.Exit(code=1)
    media_type = "application/zip" if suffix == ".zip" else "application/json"
    resp = _request(
        "POST",
        "/import",
        host=host,
        data=source.read_bytes(),
        headers={"Content-Type": media_type},
    )
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
