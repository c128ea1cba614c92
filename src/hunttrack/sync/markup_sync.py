"""Item API client for refreshing the markup library and equipment data."""

import json
import urllib.error
import urllib.request
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from hunttrack.config.logging import get_logger
from hunttrack.core.markup import MarkupLibrary, MarkupSource, api_items_to_library
from hunttrack.data.equipment_db import EQUIPMENT_FILES

logger = get_logger()

DEFAULT_API_BASE = "https://api.entropianexus.com"

ITEMS_ENDPOINT = "/items"

EQUIPMENT_ENDPOINTS = {
    "weapon": "/weapons",
    "amp": "/amps",
    "scope": "/weaponvisionattachments?type=scope",
    "sight": "/weaponvisionattachments?type=sight",
}


class MarkupSyncClient:
    """Client for the public item database API."""

    USER_AGENT = "HuntTrack-Sync"

    def __init__(self, api_base: Optional[str] = None, timeout: float = 30) -> None:
        """
        Initialize sync client.

        Args:
            api_base: API root URL (defaults to the public item database)
            timeout: Request timeout in seconds
        """
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self.timeout = timeout
        self.last_error: Optional[str] = None

    def _make_request(self, endpoint: str) -> Optional[list[dict[str, Any]]]:
        """GET an endpoint expected to return a JSON array."""
        url = f"{self.api_base}{endpoint}"
        headers = {"User-Agent": self.USER_AGENT, "Accept": "application/json"}

        try:
            req = urllib.request.Request(url, headers=headers)
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                data = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            self.last_error = f"API error: {e.code} {e.reason}"
            logger.warning(f"{self.last_error} ({url})")
            return None
        except urllib.error.URLError as e:
            self.last_error = f"Network error: {e.reason}"
            logger.warning(f"{self.last_error} ({url})")
            return None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self.last_error = f"Invalid response: {e}"
            logger.warning(f"{self.last_error} ({url})")
            return None

        self.last_error = None
        if not isinstance(data, list):
            return []
        return data

    def fetch_library(self) -> Optional[MarkupLibrary]:
        """
        Download item records and build a fresh markup library.

        Returns:
            MarkupLibrary or None if the request failed
        """
        data = self._make_request(ITEMS_ENDPOINT)
        if data is None:
            return None

        library = MarkupLibrary(items=api_items_to_library(data), last_synced=datetime.now())
        logger.info(f"Fetched {len(library.items)} items for markup library")
        return library

    def fetch_equipment(self, equipment_type: str) -> Optional[list[dict[str, Any]]]:
        """Download raw equipment records of one type."""
        endpoint = EQUIPMENT_ENDPOINTS.get(equipment_type)
        if endpoint is None:
            raise ValueError(f"Unknown equipment type: {equipment_type}")
        return self._make_request(endpoint)


def refresh_library(existing: MarkupLibrary, fetched: MarkupLibrary) -> MarkupLibrary:
    """
    Combine a freshly fetched library with the stored one.

    Fetched entries replace API/static ones; manual entries survive, and
    fetched TT values are copied into them.
    """
    items = dict(fetched.items)
    for name, entry in existing.items.items():
        if entry.source != MarkupSource.MANUAL:
            continue
        remote = items.get(name)
        if remote is not None and remote.tt_value is not None:
            entry = replace(entry, tt_value=remote.tt_value)
        items[name] = entry

    return MarkupLibrary(
        items=items,
        last_synced=fetched.last_synced,
        version=existing.version,
        default_markup=existing.default_markup,
    )


def update_equipment_files(client: MarkupSyncClient, directory: Path) -> dict[str, int]:
    """
    Download every equipment type and write the data files.

    Types whose download fails keep their current file.

    Returns:
        Dict of equipment type -> records written (failed types omitted)
    """
    directory.mkdir(parents=True, exist_ok=True)
    written = {}
    for equipment_type, filename in EQUIPMENT_FILES.items():
        records = client.fetch_equipment(equipment_type)
        if records is None:
            logger.warning(f"Equipment update failed for {equipment_type}")
            continue
        path = directory / filename
        with open(path, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False)
        written[equipment_type] = len(records)
        logger.info(f"Wrote {len(records)} {equipment_type} records to {path}")
    return written
