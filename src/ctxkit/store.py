"""File-backed store for named context bundles."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import jsonschema
from pydantic import ValidationError

from .exceptions import InvalidInputError, NotFoundError, StorageError
from .models import BUNDLE_NAME_PATTERN, Bundle, BundleSummary, StatusPolicy

logger = logging.getLogger(__name__)

BUNDLE_SUFFIX = ".json"

BUNDLE_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "ctxkit context bundle",
    "type": "object",
    "required": ["name", "created", "tokens"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "created": {"type": "string"},
        "context": {
            "type": "object",
            "properties": {
                "task": {"type": "string"},
                "files_modified": {"type": "array", "items": {"type": "string"}},
                "decisions": {"type": "array", "items": {"type": "string"}},
                "progress": {"type": "string"},
            },
        },
        "tokens": {"type": "integer", "minimum": 0},
        "next_agent": {"type": ["string", "null"]},
        "next_task": {"type": ["string", "null"]},
    },
}


class BundleStore:
    """Saves, loads, and lists bundles as one JSON document per name."""

    def __init__(
        self,
        root: Path,
        status_policy: StatusPolicy | None = None,
    ) -> None:
        """Initialize store rooted at a directory.

        Args:
            root: Directory holding <name>.json documents, created on first save
            status_policy: Age windows used to derive summary status
        """
        self.root = Path(root)
        self.status_policy = status_policy or StatusPolicy()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    def _path_for(self, name: str) -> Path:
        if not isinstance(name, str) or not name:
            msg = "Bundle name must be a non-empty string"
            raise InvalidInputError(msg, details={"name": name})
        if not BUNDLE_NAME_PATTERN.fullmatch(name):
            msg = f"Invalid bundle name: {name!r}"
            raise InvalidInputError(msg, details={"name": name})
        return self.root / f"{name}{BUNDLE_SUFFIX}"

    def save(self, bundle: Bundle) -> None:
        """Persist a bundle, replacing any bundle with the same name.

        Args:
            bundle: Bundle to persist

        Raises:
            InvalidInputError: If the bundle name or token count is invalid
            StorageError: If the bundle cannot be written
        """
        path = self._path_for(bundle.name)
        if bundle.tokens < 0:
            msg = f"Token count must be non-negative, got {bundle.tokens}"
            raise InvalidInputError(msg, details={"name": bundle.name})

        content = json.dumps(bundle.to_document(), indent=2, ensure_ascii=False) + "\n"

        with self._lock_for(bundle.name):
            try:
                self.root.mkdir(parents=True, exist_ok=True)
                _atomic_write_text(path, content)
            except OSError as e:
                msg = f"Failed to save bundle {bundle.name!r}: {e}"
                raise StorageError(msg, details={"path": str(path)}) from e

        logger.debug("Saved bundle %s (%d tokens) to %s", bundle.name, bundle.tokens, path)

    def load(self, name: str) -> Bundle:
        """Load the most recently saved bundle with the given name.

        Raises:
            InvalidInputError: If the name is empty or not a valid bundle name
            NotFoundError: If no bundle with that name exists
            StorageError: If the stored document cannot be read or is invalid
        """
        path = self._path_for(name)
        if not path.exists():
            msg = f"Bundle not found: {name}"
            raise NotFoundError(msg, details={"path": str(path)})

        bundle = self._read(path)
        logger.debug("Loaded bundle %s from %s", name, path)
        return bundle

    def exists(self, name: str) -> bool:
        """Check whether a bundle with the given name is stored."""
        return self._path_for(name).exists()

    def names(self) -> list[str]:
        """Names of all stored bundles, sorted."""
        if not self.root.is_dir():
            return []
        return sorted(
            path.stem
            for path in self.root.glob(f"*{BUNDLE_SUFFIX}")
            if BUNDLE_NAME_PATTERN.fullmatch(path.stem)
        )

    def list(self, now: datetime | None = None) -> list[BundleSummary]:
        """Summarize every stored bundle, newest first.

        Documents that cannot be read are logged and skipped.

        Args:
            now: Reference time for status derivation, defaults to current UTC time

        Returns:
            Summaries of all readable bundles
        """
        now = now or datetime.now(tz=UTC)
        summaries: list[BundleSummary] = []

        for name in self.names():
            try:
                bundle = self._read(self.root / f"{name}{BUNDLE_SUFFIX}")
            except StorageError as e:
                logger.warning("Skipping unreadable bundle %s: %s", name, e)
                continue

            summaries.append(
                BundleSummary(
                    name=bundle.name,
                    created=bundle.created,
                    tokens=bundle.tokens,
                    status=self.status_policy.status_for(bundle.created, now),
                    task=bundle.task,
                ),
            )

        summaries.sort(key=lambda s: s.name)
        summaries.sort(key=lambda s: _sort_timestamp(s.created), reverse=True)
        return summaries

    def _read(self, path: Path) -> Bundle:
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            msg = f"Bundle file is not valid JSON: {path}: {e}"
            raise StorageError(msg, details={"path": str(path)}) from e
        except UnicodeDecodeError as e:
            msg = f"Bundle file is not valid UTF-8: {path}: {e}"
            raise StorageError(msg, details={"path": str(path)}) from e
        except OSError as e:
            msg = f"Failed to read bundle file {path}: {e}"
            raise StorageError(msg, details={"path": str(path)}) from e

        try:
            jsonschema.validate(data, BUNDLE_SCHEMA)
        except jsonschema.ValidationError as e:
            msg = f"Bundle schema validation failed for {path}: {e.message}"
            raise StorageError(
                msg,
                details={"path": str(path), "field": list(e.absolute_path)},
            ) from e

        try:
            return Bundle.model_validate(data)
        except ValidationError as e:
            msg = f"Bundle validation failed for {path}: {e}"
            raise StorageError(msg, details={"path": str(path)}) from e


def _sort_timestamp(created: datetime) -> float:
    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return created.timestamp()


def _atomic_write_text(path: Path, content: str) -> None:
    """Write content to path via a temp file and rename."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.tmp.", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
