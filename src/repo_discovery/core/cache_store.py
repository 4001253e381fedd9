"""Keyed persistence of cache records as YAML blobs."""

import re
from pathlib import Path
from typing import Any, Optional

import yaml

from repo_discovery.core.interfaces import KeyValueMedium


class MemoryMedium(KeyValueMedium):
    """Keep blobs in a dict. Lost when the process exits."""

    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}
        self.writes = 0

    def read(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self.blobs[key] = blob
        self.writes += 1

    def remove(self, key: str) -> None:
        self.blobs.pop(key, None)


class DirectoryMedium(KeyValueMedium):
    """Keep each blob as ``<key>.yaml`` inside a directory."""

    def __init__(self, storage_dir: Path) -> None:
        self.storage_dir = storage_dir
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def read(self, key: str) -> Optional[str]:
        path = self._get_path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            print(f"⚠️  Warning: Could not read cache {key}: {e}")
            return None

    def write(self, key: str, blob: str) -> None:
        path = self._get_path(key)
        # Atomic replace
        tmp_path = path.with_suffix(".yaml.tmp")
        tmp_path.write_text(blob, encoding="utf-8")
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        self._get_path(key).unlink(missing_ok=True)

    def _get_path(self, key: str) -> Path:
        safe_key = re.sub(r"[^\w-]", "_", key)
        return self.storage_dir / f"{safe_key}.yaml"


class LocalCacheStore:
    """Save, load and delete whole cache records by key.

    A record is serialized as one YAML document. There is no partial
    update: every save rewrites the full record.
    """

    def __init__(self, medium: KeyValueMedium) -> None:
        self.medium = medium

    def save(self, key: str, record: dict[str, Any]) -> None:
        blob = yaml.safe_dump(record, allow_unicode=True, default_flow_style=False, sort_keys=False)
        self.medium.write(key, blob)

    def load(self, key: str) -> Optional[dict[str, Any]]:
        """Load a record; corrupt or undecodable blobs count as a miss."""
        blob = self.medium.read(key)
        if blob is None:
            return None

        try:
            data = yaml.safe_load(blob)
        except yaml.YAMLError as e:
            print(f"⚠️  Warning: Discarding unreadable cache {key}: {e}")
            return None

        if not isinstance(data, dict):
            print(f"⚠️  Warning: Discarding malformed cache {key}")
            return None

        return data

    def delete(self, key: str) -> None:
        self.medium.remove(key)
