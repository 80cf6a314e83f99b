"""
asset_deploy/manifest.py - Manifest and content store built from FileEntry streams.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import AsyncIterable, Dict, Iterable, List

from asset_deploy.fingerprint import FileEntry


@dataclass
class AssetManifest:
    """What the remote should end up serving, and the bytes to send it.

    ``entries`` maps logical path -> {"hash", "size"}; several paths may share
    a hash. ``content`` maps hash -> base64 text, one entry per distinct hash.
    """
    entries: Dict[str, Dict[str, object]] = field(default_factory=dict)
    content: Dict[str, str] = field(default_factory=dict)

    def add(self, entry: FileEntry) -> None:
        self.entries[entry.logical_path] = {
            "hash": entry.content_fingerprint,
            "size": entry.byte_size,
        }
        # identical content maps to the same key, so overwriting is harmless
        self.content[entry.content_fingerprint] = base64.b64encode(entry.content).decode("ascii")

    def select(self, fingerprints: Iterable[str]) -> Dict[str, str]:
        """Encoded payload for exactly the given fingerprints. KeyError if one is unknown."""
        return {fp: self.content[fp] for fp in fingerprints}

    def to_wire(self) -> Dict[str, Dict[str, object]]:
        return {path: dict(meta) for path, meta in self.entries.items()}

    @property
    def fingerprints(self) -> List[str]:
        return list(self.content)

    def __len__(self) -> int:
        return len(self.entries)


def build_manifest(entries: Iterable[FileEntry]) -> AssetManifest:
    manifest = AssetManifest()
    for entry in entries:
        manifest.add(entry)
    return manifest


async def abuild_manifest(entries: AsyncIterable[FileEntry]) -> AssetManifest:
    manifest = AssetManifest()
    async for entry in entries:
        manifest.add(entry)
    return manifest
