"""Minimal kzip archive writer and reader.

A kzip is a zip archive with a single top-level directory holding
content-addressed file blobs under ``files/`` and JSON-encoded
compilation units under ``units/``; each entry is named by the SHA-256
hex digest of its bytes.
"""

from __future__ import annotations

import hashlib
import json
import shutil
import zipfile
from pathlib import Path
from typing import Any, BinaryIO, Optional

from kzip_tools.rust_project.units import CompilationUnit

DEFAULT_ROOT = "root"

# Fixed timestamp so equal inputs produce byte-identical archives.
_ZIP_DATE = (1980, 1, 1, 0, 0, 0)
_CHUNK_SIZE = 8192


class KzipError(Exception):
    """Error writing or reading a kzip archive."""


def compute_digest(stream: BinaryIO) -> tuple[str, bytes]:
    """Read a stream to the end and hash it.

    Returns:
        Tuple of (SHA-256 hex digest, bytes read).
    """
    hasher = hashlib.sha256()
    chunks = []
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        hasher.update(chunk)
        chunks.append(chunk)
    return hasher.hexdigest(), b"".join(chunks)


def encode_unit(unit: CompilationUnit, index: Optional[dict[str, Any]] = None) -> bytes:
    """Encode a unit as an IndexedCompilation JSON record."""
    record: dict[str, Any] = {"unit": unit.to_json()}
    if index:
        record["index"] = index
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class KzipWriter:
    """Writes files and compilation units into a kzip archive.

    Identical file contents and identical units are stored once.
    """

    def __init__(self, path: Path | str, root: str = DEFAULT_ROOT):
        self.path = Path(path)
        self.root = root
        self._file_digests: set[str] = set()
        self._unit_digests: set[str] = set()
        self._closed = False
        self._zip = zipfile.ZipFile(self.path, "w")
        try:
            for name in (f"{root}/", f"{root}/files/", f"{root}/units/"):
                self._write_entry(name, b"")
        except OSError:
            self._zip.close()
            raise

    def __enter__(self) -> "KzipWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _write_entry(self, name: str, data: bytes) -> None:
        info = zipfile.ZipInfo(name, date_time=_ZIP_DATE)
        if name.endswith("/"):
            info.compress_type = zipfile.ZIP_STORED
            info.external_attr = (0o40755 << 16) | 0x10
        else:
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
        self._zip.writestr(info, data)

    def _check_open(self) -> None:
        if self._closed:
            raise KzipError(f"kzip writer for {self.path} is closed")

    def add_file(self, stream: BinaryIO) -> str:
        """Store the contents of ``stream`` and return its digest.

        Raises:
            OSError: If reading the stream fails.
            KzipError: If the archive cannot be written.
        """
        self._check_open()
        digest, data = compute_digest(stream)
        if digest in self._file_digests:
            return digest
        try:
            self._write_entry(f"{self.root}/files/{digest}", data)
        except OSError as e:
            raise KzipError(f"Error writing file {digest}: {e}") from e
        self._file_digests.add(digest)
        return digest

    def add_unit(self, unit: CompilationUnit, index: Optional[dict[str, Any]] = None) -> str:
        """Store a compilation unit and return its digest.

        Raises:
            KzipError: If the unit cannot be encoded or written.
        """
        self._check_open()
        try:
            record = encode_unit(unit, index)
        except (TypeError, ValueError) as e:
            raise KzipError(f"Error encoding compilation unit: {e}") from e

        digest = hashlib.sha256(record).hexdigest()
        if digest in self._unit_digests:
            return digest
        try:
            self._write_entry(f"{self.root}/units/{digest}", record)
        except OSError as e:
            raise KzipError(f"Error writing unit {digest}: {e}") from e
        self._unit_digests.add(digest)
        return digest

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._zip.close()
        except OSError as e:
            raise KzipError(f"Error closing {self.path}: {e}") from e


def create_kzip(path: Path | str, root: str = DEFAULT_ROOT) -> KzipWriter:
    """Create a kzip at ``path``, removing whatever is there first.

    Raises:
        KzipError: If the old output cannot be removed or the archive
            cannot be created.
    """
    path = Path(path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)
        return KzipWriter(path, root=root)
    except OSError as e:
        raise KzipError(f"Error creating {path}: {e}") from e


def _archive_root(archive: zipfile.ZipFile) -> str:
    names = archive.namelist()
    if not names:
        raise KzipError("empty kzip archive")
    return names[0].split("/", 1)[0]


def _entries_under(archive: zipfile.ZipFile, prefix: str) -> list[str]:
    return [
        name for name in archive.namelist()
        if name.startswith(prefix) and not name.endswith("/")
    ]


def read_units(path: Path | str) -> list[dict[str, Any]]:
    """Read every unit record of a kzip, in archive order.

    Each record is the decoded IndexedCompilation with an extra
    ``"digest"`` key naming its entry.
    """
    try:
        with zipfile.ZipFile(path) as archive:
            root = _archive_root(archive)
            records = []
            for name in _entries_under(archive, f"{root}/units/"):
                record = json.loads(archive.read(name).decode("utf-8"))
                record["digest"] = name.rsplit("/", 1)[-1]
                records.append(record)
            return records
    except (OSError, zipfile.BadZipFile, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise KzipError(f"Error reading {path}: {e}") from e


def list_file_digests(path: Path | str) -> list[str]:
    """List the digests of every file blob in a kzip."""
    try:
        with zipfile.ZipFile(path) as archive:
            root = _archive_root(archive)
            return [
                name.rsplit("/", 1)[-1]
                for name in _entries_under(archive, f"{root}/files/")
            ]
    except (OSError, zipfile.BadZipFile) as e:
        raise KzipError(f"Error reading {path}: {e}") from e
