import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional


class JsonFileStore:
    """
    Small durable key/value store kept in one JSON file.

    Every write replaces the file atomically, so a crash mid-write leaves the
    previous contents intact. I/O and decode errors are raised to the caller.
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            content = fh.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get_item(self, key: str, default: Optional[Any] = None) -> Any:
        return self._read().get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
