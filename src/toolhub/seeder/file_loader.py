import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from toolhub.catalog.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    created: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class AppFileSeeder:
    """
    Seeds the catalog from a local file (YAML or JSON).

    The file holds a list of app payloads, or a mapping with an `apps` list.
    Every payload goes through CatalogService.create_app, so the same
    normalization and duplicate checks apply as for the HTTP API.
    """

    def __init__(self, service: CatalogService):
        self.service = service

    def log(self, message: str):
        logger.info(f"[{self.__class__.__name__}] {message}")

    def load(self, path: Union[str, Path]) -> List[Dict[str, Any]]:
        file_path = Path(path)
        with open(file_path, "r", encoding="utf-8") as f:
            if file_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        if isinstance(data, dict):
            data = data.get("apps", [])
        if not isinstance(data, list):
            raise ValueError(f"{file_path}: expected a list of apps")
        records = [item for item in data if isinstance(item, dict)]
        self.log(f"Loaded {len(records)} records from {file_path.name}")
        return records

    def run(self, path: Union[str, Path]) -> SeedReport:
        report = SeedReport()
        for payload in self.load(path):
            result = self.service.create_app(payload)
            app_id = str(payload.get("id") or "?")
            if result.ok:
                report.created.append(app_id)
            elif result.status == 409:
                report.duplicates.append(app_id)
            else:
                report.failed[app_id] = result.error or "unknown error"
        self.log(
            f"created={len(report.created)} duplicates={len(report.duplicates)} "
            f"failed={len(report.failed)}"
        )
        return report
