from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from toolhub import __version__
from toolhub.config import get_settings

app = typer.Typer(add_completion=False, help="toolhub CLI")


@app.command()
def start(
    host: Optional[str] = typer.Option(None, help="Bind host"),
    port: Optional[int] = typer.Option(None, help="Bind port"),
    reload: bool = typer.Option(False, help="Auto-reload on changes (dev)"),
) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "toolhub.api.app:create_app",
        factory=True,
        host=host or settings.HOST,
        port=port or settings.PORT,
        reload=reload,
    )


@app.command()
def version() -> None:
    typer.echo(__version__)


@app.command()
def seed(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML or JSON file of apps"),
) -> None:
    """
    Create catalog apps from a file. Apps whose id already exists are skipped.

    Only meaningful for persistent backends (sql/document); the memory backend
    is discarded when the command exits.
    """
    from toolhub.catalog.services.catalog_service import build_catalog_service
    from toolhub.seeder.file_loader import AppFileSeeder

    service = build_catalog_service()
    try:
        report = AppFileSeeder(service).run(path)
    finally:
        service.backend.close()

    typer.echo(
        f"Seeded {len(report.created)} apps "
        f"({len(report.duplicates)} duplicates skipped, {len(report.failed)} failed)"
    )
    for app_id, error in report.failed.items():
        typer.echo(f"  {app_id}: {error}", err=True)
    if report.failed:
        raise typer.Exit(1)


@app.command()
def stats() -> None:
    """Print catalog statistics as JSON."""
    from toolhub.catalog.services.catalog_service import build_catalog_service

    service = build_catalog_service()
    try:
        typer.echo(json.dumps(service.get_stats(), indent=2, sort_keys=True))
    finally:
        service.backend.close()


def main() -> None:
    app()
