from __future__ import annotations

import glob
import json
import logging
import os
import shutil
import tempfile
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Record = Union[BaseModel, Mapping[str, Any]]


class RecordNotFoundError(ValueError):
    pass


class DuplicateRecordError(ValueError):
    pass


class RecordInUseError(ValueError):
    """A record that active rows of another table still point at."""


def _json_default(o: Any) -> Any:
    if isinstance(o, (date, datetime)):
        return o.isoformat()
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


class JsonRepository:
    """
    JSON-file repository with a configurable primary key.
    - Every read-modify-write runs under one re-entrant lock
    - Writes go to a temp file then `os.replace`, readers never see a partial file
    - Rotating backups (backup_enabled, backup_keep)
    - Skips the write when the content is unchanged (fewer .bak files)
    - Soft delete through a `deleted_at` timestamp
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        entity_name: str = "entity",
        key: str = "id",
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.filepath = Path(filepath)
        self.entity_name = entity_name
        self.key = key
        self._lock = threading.RLock()
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))

        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        if not self.filepath.exists():
            self._write_raw([])

    # ---------------- Low-level I/O ---------------- #

    def _read_raw(self) -> List[Dict[str, Any]]:
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, list) else []
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            # corrupt file -> keep a copy aside and start from an empty list
            backup = self.filepath.with_suffix(".corrupt.json")
            logger.warning("Corrupt %s store %s, copied to %s", self.entity_name, self.filepath, backup)
            shutil.copy2(self.filepath, backup)
            return []

    def _rotate_backups(self) -> None:
        if not self.backup_enabled or self.backup_keep <= 0:
            return
        pattern = str(self.filepath.with_suffix(".*.bak.json"))
        files = sorted(glob.glob(pattern))
        # keep the most recent ones
        for old in files[: max(0, len(files) - self.backup_keep)]:
            try:
                Path(old).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove old backup %s: %s", old, e)

    def _replace_file(self, content: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.filepath.parent, prefix=self.filepath.stem + ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, self.filepath)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _write_raw(self, data: Iterable[Mapping[str, Any]]) -> None:
        with self._lock:
            new_dump = json.dumps(list(data), ensure_ascii=False, indent=2, default=_json_default)

            if self.filepath.exists():
                if self.filepath.read_text(encoding="utf-8") == new_dump:
                    return

                if self.backup_enabled:
                    ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
                    backup = self.filepath.with_suffix(f".{ts}.bak.json")
                    try:
                        shutil.copy2(self.filepath, backup)
                    except OSError as e:
                        logger.warning("Backup of %s failed: %s", self.filepath, e)
                    self._rotate_backups()

            self._replace_file(new_dump)

    # ---------------- Helpers ---------------- #

    @staticmethod
    def _to_dict(item: Record) -> Dict[str, Any]:
        if isinstance(item, BaseModel):
            return item.model_dump(mode="json")
        return dict(item)

    def _index_of(self, rows: List[Dict[str, Any]], obj_id: Any) -> int:
        for i, r in enumerate(rows):
            if str(r.get(self.key)) == str(obj_id):
                return i
        return -1

    # ---------------- CRUD ---------------- #

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._read_raw()

    def get_by_id(self, obj_id: Any) -> Optional[Dict[str, Any]]:
        rows = self.list_all()
        idx = self._index_of(rows, obj_id)
        return rows[idx] if idx >= 0 else None

    def add(self, item: Record) -> Dict[str, Any]:
        record = self._to_dict(item)
        k = self.key
        if not record.get(k):
            record[k] = uuid4().hex
        with self._lock:
            data = self._read_raw()
            if self._index_of(data, record[k]) >= 0:
                raise DuplicateRecordError(f"{self.entity_name} with {k}={record[k]} already exists")
            data.append(record)
            self._write_raw(data)
        return record

    def update(self, item: Record) -> Dict[str, Any]:
        record = self._to_dict(item)
        k = self.key
        obj_id = record.get(k)
        if not obj_id:
            raise ValueError(f"Cannot update {self.entity_name} without '{k}'")
        with self._lock:
            data = self._read_raw()
            idx = self._index_of(data, obj_id)
            if idx < 0:
                raise RecordNotFoundError(f"{self.entity_name} with {k}={obj_id} not found")
            merged = {**data[idx], **record}
            data[idx] = merged
            self._write_raw(data)
        return merged

    def upsert(self, item: Record) -> Dict[str, Any]:
        with self._lock:
            try:
                return self.update(item)
            except RecordNotFoundError:
                return self.add(item)

    def delete(self, obj_id: Any) -> bool:
        with self._lock:
            data = self._read_raw()
            new_data = [d for d in data if str(d.get(self.key)) != str(obj_id)]
            changed = len(new_data) != len(data)
            if changed:
                self._write_raw(new_data)
        return changed

    def delete_where(self, predicate: Callable[[Dict[str, Any]], bool]) -> int:
        with self._lock:
            data = self._read_raw()
            new_data = [d for d in data if not predicate(d)]
            removed = len(data) - len(new_data)
            if removed:
                self._write_raw(new_data)
        return removed

    # ---------------- Soft delete ---------------- #

    def _set_deleted_at(self, obj_id: Any, value: Optional[str]) -> Dict[str, Any]:
        with self._lock:
            data = self._read_raw()
            idx = self._index_of(data, obj_id)
            if idx < 0:
                raise RecordNotFoundError(f"{self.entity_name} with {self.key}={obj_id} not found")
            data[idx] = {**data[idx], "deleted_at": value}
            self._write_raw(data)
            return data[idx]

    def soft_delete(self, obj_id: Any) -> Dict[str, Any]:
        return self._set_deleted_at(obj_id, datetime.utcnow().isoformat())

    def restore(self, obj_id: Any) -> Dict[str, Any]:
        return self._set_deleted_at(obj_id, None)

    def list_active(self) -> List[Dict[str, Any]]:
        return [r for r in self.list_all() if not r.get("deleted_at")]

    def list_deleted(self) -> List[Dict[str, Any]]:
        return [r for r in self.list_all() if r.get("deleted_at")]

    # ---------------- Lookups ---------------- #

    def find(self, predicate: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
        return [r for r in self.list_all() if predicate(r)]

    def find_one(self, predicate: Callable[[Dict[str, Any]], bool]) -> Optional[Dict[str, Any]]:
        for r in self.list_all():
            if predicate(r):
                return r
        return None

    def count(self, predicate: Callable[[Dict[str, Any]], bool]) -> int:
        return sum(1 for r in self.list_all() if predicate(r))
