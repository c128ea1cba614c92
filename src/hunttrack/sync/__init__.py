"""Remote item database sync for markup and equipment data."""

from hunttrack.sync.markup_sync import MarkupSyncClient, refresh_library, update_equipment_files

__all__ = ["MarkupSyncClient", "refresh_library", "update_equipment_files"]
