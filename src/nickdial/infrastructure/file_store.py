"""JSON file implementation of NicknameStore. Survives process restarts without a DB."""

import json
import logging
import os
import threading
from pathlib import Path

from nickdial.application.errors import StoreUnavailable
from nickdial.domain import ContactEntity

logger = logging.getLogger(__name__)


class JsonFileNicknameStore:
    """Keeps {nickname: {voice_number, sms_number}} in one JSON file.
    Every upsert rewrites the file through a temp file and os.replace.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}
        try:
            obj = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise StoreUnavailable(f"Cannot read {self._path}: {exc}") from exc
        if not isinstance(obj, dict):
            raise StoreUnavailable(f"{self._path} does not hold a JSON object")
        return obj

    def lookup(self, nickname: str) -> ContactEntity | None:
        with self._lock:
            row = self._load().get(nickname)
        if not isinstance(row, dict):
            return None
        return ContactEntity(
            nickname=nickname,
            voice_number=str(row.get("voice_number") or ""),
            sms_number=str(row.get("sms_number") or ""),
        )

    def upsert(self, contact: ContactEntity) -> None:
        with self._lock:
            obj = self._load()
            obj[contact.nickname] = {
                "voice_number": contact.voice_number,
                "sms_number": contact.sms_number,
            }
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_name(self._path.name + ".tmp")
            tmp.write_text(json.dumps(obj, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp, self._path)
        logger.debug("Stored nickname %r in %s", contact.nickname, self._path)

    def list_all(self) -> list[ContactEntity]:
        with self._lock:
            obj = self._load()
        return [
            ContactEntity(
                nickname=name,
                voice_number=str(row.get("voice_number") or ""),
                sms_number=str(row.get("sms_number") or ""),
            )
            for name, row in obj.items()
            if isinstance(row, dict)
        ]
