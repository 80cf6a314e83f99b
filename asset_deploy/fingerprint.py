"""
asset_deploy/fingerprint.py - Content fingerprints for a local asset tree.

Every regular file under the asset directory gets a FileEntry: its logical
path (root-relative, forward slashes, leading "/"), a truncated SHA-256 hex
digest of its bytes, and its size. Symlinks and directories are skipped.
"""
from __future__ import annotations

import asyncio
import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Iterator, Tuple, Union

# The remote keys assets by the first 32 hex chars of the SHA-256 digest.
FINGERPRINT_LENGTH = 32


@dataclass(frozen=True)
class FileEntry:
    logical_path: str
    content_fingerprint: str
    byte_size: int
    content: bytes = field(repr=False, compare=False)


def fingerprint_bytes(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:FINGERPRINT_LENGTH]


def read_entry(path: Union[str, Path], logical_path: str) -> FileEntry:
    """Read one file fully and fingerprint it. OSError propagates."""
    with open(path, "rb") as f:
        content = f.read()
    return FileEntry(
        logical_path=logical_path,
        content_fingerprint=fingerprint_bytes(content),
        byte_size=len(content),
        content=content,
    )


def iter_asset_files(root: Union[str, Path]) -> Iterator[Tuple[str, str]]:
    """Yield (absolute_path, logical_path) for every regular file under root."""
    root_abs = os.path.abspath(str(root))
    if not os.path.exists(root_abs):
        raise FileNotFoundError(f"asset directory not found: {root}")
    if not os.path.isdir(root_abs):
        raise NotADirectoryError(f"asset directory is not a directory: {root}")

    def _raise(err: OSError) -> None:
        raise err

    # followlinks=False: symlinked directories are listed but never entered
    for dirpath, dirnames, filenames in os.walk(root_abs, onerror=_raise):
        rel = os.path.relpath(dirpath, root_abs)
        rel_dir = "/" if rel in (".", "") else "/" + rel.replace(os.sep, "/")
        for name in filenames:
            abs_path = os.path.join(dirpath, name)
            if os.path.islink(abs_path) or not os.path.isfile(abs_path):
                continue
            yield abs_path, rel_dir.rstrip("/") + "/" + name


def fingerprint_directory(root: Union[str, Path]) -> Iterator[FileEntry]:
    """Lazily fingerprint every regular file under root."""
    for abs_path, logical_path in iter_asset_files(root):
        yield read_entry(abs_path, logical_path)


async def afingerprint_directory(root: Union[str, Path]) -> AsyncIterator[FileEntry]:
    """Async variant: each read+hash runs on a worker thread."""
    files = await asyncio.to_thread(lambda: list(iter_asset_files(root)))
    for abs_path, logical_path in files:
        yield await asyncio.to_thread(read_entry, abs_path, logical_path)
