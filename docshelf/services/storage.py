from __future__ import annotations

import logging
import os
import re
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Iterator

from ..errors import IOFailure, NotFound

logger = logging.getLogger(__name__)

_EXTENSION_PATTERN = re.compile(r"[^a-z0-9]")
_MAX_EXTENSION_LENGTH = 16
_KEY_PATTERN = re.compile(r"\d+-[0-9a-f]{32}(\.[a-z0-9]{1,16})?")


class LocalBlobStore:
    """Holds uploaded bytes as flat files under ``root``.

    Keys are generated here and never derived from the uploader's filename,
    apart from the extension.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _build_key(self, suggested_extension: str | None) -> str:
        suffix = _EXTENSION_PATTERN.sub("", (suggested_extension or "").lower())[:_MAX_EXTENSION_LENGTH]
        stamp = int(time.time() * 1000)
        return f"{stamp}-{uuid.uuid4().hex}" + (f".{suffix}" if suffix else "")

    def _path_for(self, key: str) -> Path:
        if not key or key in {".", ".."} or "/" in key or "\\" in key or "\x00" in key:
            raise NotFound(f"Invalid storage key: {key!r}")
        return self.root / key

    def put(self, data: bytes, suggested_extension: str | None = None) -> str:
        key = self._build_key(suggested_extension)
        path = self._path_for(key)
        try:
            # "xb" refuses to overwrite an existing key.
            with open(path, "xb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as exc:
            try:
                path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Failed to remove partial blob", extra={"storage_key": key}, exc_info=True)
            raise IOFailure(f"Failed to write file to disk: {exc.strerror or exc}") from exc
        return key

    def open(self, key: str) -> BinaryIO:
        path = self._path_for(key)
        try:
            return open(path, "rb")
        except FileNotFoundError as exc:
            raise NotFound(f"Blob {key} not found") from exc
        except OSError as exc:
            raise IOFailure(f"Failed to read file from disk: {exc.strerror or exc}") from exc

    def read(self, key: str) -> bytes:
        with self.open(key) as handle:
            try:
                return handle.read()
            except OSError as exc:
                raise IOFailure(f"Failed to read file from disk: {exc.strerror or exc}") from exc

    def delete(self, key: str, missing_ok: bool = True) -> bool:
        """Remove a blob. Returns False when it was already absent."""
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            if missing_ok:
                return False
            raise NotFound(f"Blob {key} not found") from exc
        except OSError as exc:
            raise IOFailure(f"Failed to delete file from disk: {exc.strerror or exc}") from exc
        return True

    def exists(self, key: str) -> bool:
        try:
            return self._path_for(key).is_file()
        except NotFound:
            return False

    def size(self, key: str) -> int:
        path = self._path_for(key)
        try:
            return path.stat().st_size
        except FileNotFoundError as exc:
            raise NotFound(f"Blob {key} not found") from exc
        except OSError as exc:
            raise IOFailure(f"Failed to stat file: {exc.strerror or exc}") from exc

    def keys(self) -> Iterator[str]:
        try:
            entries = sorted(self.root.iterdir())
        except OSError as exc:
            raise IOFailure(f"Failed to list storage directory: {exc.strerror or exc}") from exc
        for entry in entries:
            # Only names produced by put(); anything else sharing the directory is not a blob.
            if entry.is_file() and _KEY_PATTERN.fullmatch(entry.name):
                yield entry.name
