"""Source file discovery and registration with the kzip writer."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from kzip_tools.rust_project.config import ConverterConfig, get_default_config
from kzip_tools.rust_project.kzip import KzipWriter
from kzip_tools.rust_project.units import FileInfo, FileInput, VName


class FileCollectionError(Exception):
    """A discovered file could not be read; the whole collection fails."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"{path}: {cause.strerror or cause}")
        self.path = path
        self.cause = cause


@dataclass
class WalkOutcome:
    """Result of walking a set of include directories."""

    paths: list[str] = field(default_factory=list)  # Project-relative
    required_inputs: list[FileInput] = field(default_factory=list)
    walk_errors: list[str] = field(default_factory=list)  # Recoverable diagnostics


def remove_project_root(path: str, project_root: str) -> str:
    """Strip ``project_root`` from the front of ``path`` if present."""
    if path.startswith(project_root):
        return path[len(project_root):]
    return path


def file_extension(path: str) -> str:
    """Return the suffix from the final dot of the last path element."""
    name = os.path.basename(path)
    dot = name.rfind(".")
    if dot < 0:
        return ""
    return name[dot:]


def is_excluded(path: str, exclude_dirs: Sequence[str]) -> bool:
    """Plain string-prefix match, so ``/a/b`` also excludes ``/a/bc``."""
    return any(path.startswith(exclude_dir) for exclude_dir in exclude_dirs)


def _walk_files(
    include_dir: str,
    follow_symlinks: bool,
    walk_errors: list[str],
) -> Iterator[str]:
    """Yield file paths under ``include_dir`` in sorted order."""
    try:
        root_stat = os.stat(include_dir) if follow_symlinks else os.lstat(include_dir)
    except OSError as e:
        walk_errors.append(f"{include_dir}: {e.strerror or e}")
        return

    if not os.path.isdir(include_dir) or (os.path.islink(include_dir) and not follow_symlinks):
        # A file given as an include dir is walked as itself.
        yield include_dir
        return

    visited_inodes: set[tuple[int, int]] = {(root_stat.st_dev, root_stat.st_ino)}

    def on_error(error: OSError) -> None:
        walk_errors.append(f"{error.filename}: {error.strerror or error}")

    for dirpath, dirnames, filenames in os.walk(
        include_dir, onerror=on_error, followlinks=follow_symlinks
    ):
        dirnames.sort()

        if follow_symlinks:
            # Drop already-visited directories to break symlink cycles.
            kept = []
            for d in dirnames:
                try:
                    st = os.stat(os.path.join(dirpath, d))
                except OSError as e:
                    walk_errors.append(f"{os.path.join(dirpath, d)}: {e.strerror or e}")
                    continue
                inode = (st.st_dev, st.st_ino)
                if inode in visited_inodes:
                    continue
                visited_inodes.add(inode)
                kept.append(d)
            dirnames[:] = kept

        for filename in sorted(filenames):
            yield os.path.normpath(os.path.join(dirpath, filename))


def collect_files(
    include_dirs: Sequence[str],
    exclude_dirs: Sequence[str],
    project_root: str,
    writer: KzipWriter,
    config: Optional[ConverterConfig] = None,
    required_inputs: Optional[list[FileInput]] = None,
) -> WalkOutcome:
    """Walk include dirs and register every surviving source file.

    Include dirs are walked in the order given. A directory that cannot be
    walked is recorded in ``walk_errors`` and skipped. Files under an
    exclude prefix or without a configured source extension are ignored.
    Each remaining file is stored in the archive and recorded under its
    project-relative path.

    Args:
        include_dirs: Directories (or files) to walk.
        exclude_dirs: Path prefixes to skip.
        project_root: Root stripped from recorded paths; should end in a separator.
        writer: Archive that stores file contents and returns digests.
        config: Naming and filtering options; defaults when None.
        required_inputs: List to append inputs to; a new list when None.

    Returns:
        WalkOutcome whose ``required_inputs`` is ``required_inputs`` if given.

    Raises:
        FileCollectionError: If a discovered file cannot be opened or read.
    """
    config = config or get_default_config()
    outcome = WalkOutcome()
    if required_inputs is not None:
        outcome.required_inputs = required_inputs

    extensions = set(config.source_extensions)
    seen: set[str] = set()

    for include_dir in include_dirs:
        for path in _walk_files(include_dir, config.follow_symlinks, outcome.walk_errors):
            if is_excluded(path, exclude_dirs):
                continue
            if file_extension(path) not in extensions:
                continue

            if config.dedupe_inputs:
                key = os.path.abspath(path)
                if key in seen:
                    continue
                seen.add(key)

            try:
                with open(path, "rb") as f:
                    digest = writer.add_file(f)
            except OSError as e:
                raise FileCollectionError(path, e) from e

            relative = remove_project_root(path, project_root)
            vname = VName(corpus=config.corpus, language=config.language, path=relative)

            outcome.paths.append(relative)
            outcome.required_inputs.append(
                FileInput(vname=vname, info=FileInfo(path=relative, digest=digest))
            )

    return outcome
