"""Tests for the item API sync client."""

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from hunttrack.core.markup import MarkupEntry, MarkupLibrary, MarkupSource
from hunttrack.data.equipment_db import EquipmentDB
from hunttrack.sync import MarkupSyncClient, refresh_library, update_equipment_files

URLOPEN = "hunttrack.sync.markup_sync.urllib.request.urlopen"

ITEMS = [
    {"Id": 1, "Name": "Animal Hide", "Properties": {"Type": "Material", "Economy": {"Value": 0.03}}},
    {"Id": 2, "Name": "Animal Oil Residue", "Properties": {"Type": "Material", "Economy": {"Value": 0.01}}},
]


def _response(payload):
    """Context-manager response returning payload as JSON."""
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8")
    response.__enter__.return_value = response
    return response


class TestMarkupSyncClient:
    """Tests for MarkupSyncClient."""

    def test_fetch_library(self):
        client = MarkupSyncClient(api_base="https://items.example/")
        with patch(URLOPEN, return_value=_response(ITEMS)) as urlopen:
            library = client.fetch_library()

        request = urlopen.call_args[0][0]
        assert request.full_url == "https://items.example/items"
        assert request.get_header("User-agent") == MarkupSyncClient.USER_AGENT
        assert set(library.items) == {"Animal Hide", "Animal Oil Residue"}
        assert library.items["Animal Hide"].source == MarkupSource.API
        assert library.last_synced is not None

    def test_http_error(self):
        client = MarkupSyncClient()
        error = urllib.error.HTTPError("https://x", 503, "Service Unavailable", {}, io.BytesIO())
        with patch(URLOPEN, side_effect=error):
            assert client.fetch_library() is None
        assert client.last_error == "API error: 503 Service Unavailable"

    def test_network_error(self):
        client = MarkupSyncClient()
        with patch(URLOPEN, side_effect=urllib.error.URLError("no route")):
            assert client.fetch_library() is None
        assert "Network error" in client.last_error

    def test_invalid_json(self):
        client = MarkupSyncClient()
        response = _response([])
        response.read.return_value = b"<html>"
        with patch(URLOPEN, return_value=response):
            assert client.fetch_library() is None
        assert client.last_error.startswith("Invalid response")

    def test_non_list_payload_is_empty(self):
        client = MarkupSyncClient()
        with patch(URLOPEN, return_value=_response({"error": "nope"})):
            assert client.fetch_library().items == {}

    def test_unknown_equipment_type(self):
        with pytest.raises(ValueError):
            MarkupSyncClient().fetch_equipment("armor")


class TestRefreshLibrary:
    """Tests for merging fetched data into the stored library."""

    def test_manual_entries_survive(self):
        existing = MarkupLibrary(
            items={
                "Animal Hide": MarkupEntry("Animal Hide", markup_percent=140.0, tt_value=0.02, source=MarkupSource.MANUAL),
                "Old Item": MarkupEntry("Old Item", markup_percent=110.0, source=MarkupSource.API),
                "Custom": MarkupEntry("Custom", markup_value=1.0, source=MarkupSource.MANUAL),
            },
            version=3,
        )
        fetched = MarkupLibrary(
            items={
                "Animal Hide": MarkupEntry("Animal Hide", markup_percent=100.0, tt_value=0.03, source=MarkupSource.API),
                "Bone": MarkupEntry("Bone", markup_percent=100.0, source=MarkupSource.API),
            }
        )
        merged = refresh_library(existing, fetched)

        assert set(merged.items) == {"Animal Hide", "Bone", "Custom"}
        hide = merged.items["Animal Hide"]
        assert hide.markup_percent == 140.0
        assert hide.tt_value == 0.03
        assert merged.version == 3


class TestUpdateEquipmentFiles:
    """Tests for equipment data downloads."""

    def test_writes_loadable_files(self, tmp_path):
        weapon = {"Id": 5, "Name": "Opalo", "Properties": {"Economy": {"Decay": 2.0, "AmmoBurn": 100}}}
        client = MarkupSyncClient()

        def fake_fetch(equipment_type):
            return [weapon] if equipment_type == "weapon" else None

        with patch.object(client, "fetch_equipment", side_effect=fake_fetch):
            written = update_equipment_files(client, tmp_path / "equipment")

        assert written == {"weapon": 1}
        db = EquipmentDB()
        assert db.load_directory(tmp_path / "equipment") == 1
        assert db.find_by_name("Opalo", "weapon").economy.decay == pytest.approx(0.02)
