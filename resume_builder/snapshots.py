"""Snapshot persistence - Save/load a résumé together with its chat."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .domain.document import ResumeDocument
from .session import ChatMessage

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


@dataclass
class Snapshot:
    id: str
    document: ResumeDocument
    history: List[ChatMessage] = field(default_factory=list)
    target_job: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class SnapshotSerializer:
    """Serialize/deserialize snapshot payloads to/from JSON dicts."""

    @staticmethod
    def serialize_message(msg: ChatMessage) -> dict:
        return {"role": msg.role, "content": msg.content, "timestamp": msg.timestamp.isoformat()}

    @staticmethod
    def deserialize_message(data: dict) -> ChatMessage:
        """Rebuild a chat message; a missing or bad timestamp becomes "now"."""
        try:
            timestamp = datetime.fromisoformat(data["timestamp"])
        except (KeyError, TypeError, ValueError):
            timestamp = datetime.now()
        role = data.get("role", "user")
        if role == "model":
            role = "assistant"
        return ChatMessage(role=role, content=data.get("content", ""), timestamp=timestamp)


class SnapshotIndex:
    """Fast snapshot lookup and metadata management."""

    def __init__(self, index_path: Path):
        self.index_path = index_path
        self.index = self._load_index()

    def add(self, snapshot_id: str, metadata: dict):
        self.index["snapshots"][snapshot_id] = metadata
        self._save_index()

    def remove(self, snapshot_id: str):
        if snapshot_id in self.index["snapshots"]:
            del self.index["snapshots"][snapshot_id]
            self._save_index()

    def get(self, snapshot_id: str) -> Optional[dict]:
        return self.index["snapshots"].get(snapshot_id)

    def list_all(self) -> List[dict]:
        """List all snapshots, most recently updated first."""
        items = [{"id": snapshot_id, **metadata} for snapshot_id, metadata in self.index["snapshots"].items()]
        items.sort(key=lambda x: x.get("updated_at", ""), reverse=True)
        return items

    def _load_index(self) -> dict:
        if self.index_path.exists():
            try:
                with open(self.index_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict) and isinstance(data.get("snapshots"), dict):
                    return data
            except (OSError, ValueError) as e:
                logger.warning(f"Snapshot index unreadable, starting fresh: {e}")
        return {"snapshots": {}}

    def _save_index(self):
        try:
            with open(self.index_path, "w", encoding="utf-8") as f:
                json.dump(self.index, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.warning(f"Failed to save snapshot index: {e}")


class SnapshotStore:
    """Manage snapshot lifecycle: save, load, list, delete."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.index = SnapshotIndex(self.directory / ".index.json")

    def save(
        self,
        document: ResumeDocument,
        history: Optional[List[ChatMessage]] = None,
        name: Optional[str] = None,
        target_job: Optional[str] = None,
        snapshot_id: Optional[str] = None,
    ) -> str:
        """Write a snapshot file and index entry.

        Args:
            document: Résumé to store
            history: Chat transcript to store alongside it
            name: Optional label folded into the generated id
            target_job: Job posting text the chat was tailoring for
            snapshot_id: Existing id to overwrite

        Returns:
            Snapshot ID
        """
        history = history or []
        if snapshot_id is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            unique_id = str(uuid.uuid4())[:8]
            label = _slug(name) if name else ""
            snapshot_id = f"resume_{timestamp}_{label}_{unique_id}" if label else f"resume_{timestamp}_{unique_id}"

        now = datetime.now().isoformat()
        existing = self.index.get(snapshot_id) or {}
        created_at = existing.get("created_at", now)
        payload = {
            "schema_version": SCHEMA_VERSION,
            "snapshot": {"id": snapshot_id, "created_at": created_at, "updated_at": now, "name": name},
            "document": document.to_dict(),
            "history": [SnapshotSerializer.serialize_message(msg) for msg in history],
            "target_job": target_job,
        }

        with open(self._path(snapshot_id), "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        self.index.add(
            snapshot_id,
            {
                "name": name,
                "created_at": created_at,
                "updated_at": now,
                "full_name": document.contact.full_name,
                "experience_count": len(document.experiences),
                "message_count": len(history),
            },
        )
        return snapshot_id

    def load(self, snapshot_id: str) -> Snapshot:
        """Load a snapshot.

        Raises:
            FileNotFoundError: If the snapshot file doesn't exist
        """
        path = self._path(snapshot_id)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot not found: {snapshot_id}")

        with open(path, "r", encoding="utf-8") as f:
            data: Dict[str, Any] = json.load(f)

        meta = data.get("snapshot", {})
        return Snapshot(
            id=snapshot_id,
            document=ResumeDocument.from_dict(data.get("document", {})),
            history=[SnapshotSerializer.deserialize_message(item) for item in data.get("history", [])],
            target_job=data.get("target_job"),
            created_at=meta.get("created_at", ""),
            updated_at=meta.get("updated_at", ""),
        )

    def list_all(self) -> List[dict]:
        return self.index.list_all()

    def delete(self, snapshot_id: str) -> bool:
        """Delete a snapshot. Returns False if it did not exist."""
        path = self._path(snapshot_id)
        if path.exists():
            path.unlink()
            self.index.remove(snapshot_id)
            return True
        return False

    def latest(self) -> Optional[str]:
        items = self.list_all()
        return items[0]["id"] if items else None

    def _path(self, snapshot_id: str) -> Path:
        return self.directory / f"{snapshot_id}.json"


def _slug(name: str) -> str:
    return "".join(ch if ch.isalnum() else "-" for ch in name.strip()).strip("-")[:40]
