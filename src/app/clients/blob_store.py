import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol


class BlobStore(Protocol):
    def read(self, key: str) -> Any | None: ...

    def write(self, key: str, value: Any) -> None: ...


class InMemoryBlobStore:
    def __init__(self, initial: dict[str, Any] | None = None):
        self._blobs: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def read(self, key: str) -> Any | None:
        if key not in self._blobs:
            return None
        return copy.deepcopy(self._blobs[key])

    def write(self, key: str, value: Any) -> None:
        # Round-trip through JSON so stored blobs hold plain records only.
        self._blobs[key] = json.loads(json.dumps(value))

    def raw(self, key: str) -> str | None:
        if key not in self._blobs:
            return None
        return json.dumps(self._blobs[key], sort_keys=True)


class JsonFileBlobStore:
    """One ``<key>.json`` file per blob, replaced atomically on write."""

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    def read(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write(self, key: str, value: Any) -> None:
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(value, handle, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"
