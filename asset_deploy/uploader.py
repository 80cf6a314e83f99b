"""
asset_deploy/uploader.py - Sequential bucket uploads under an upload session.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import reduce
from typing import Any, Dict, List, Optional

from asset_deploy.logger import ProtocolError, get_logger
from asset_deploy.manifest import AssetManifest
from asset_deploy.session import UploadSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadOutcome:
    completion_token: str
    batches_sent: int
    fingerprints_uploaded: int


def latest_token(current: Optional[str], response: Optional[Dict[str, Any]]) -> Optional[str]:
    """Fold step: a non-empty ``jwt`` replaces the running candidate."""
    token = (response or {}).get("jwt")
    return token if token else current


def completion_token_from(responses: List[Optional[Dict[str, Any]]]) -> str:
    token = reduce(latest_token, responses, None)
    if not token:
        raise ProtocolError("completion token not received after uploading all batches")
    return token


async def upload_batches(client, session: UploadSession, manifest: AssetManifest, log=None) -> UploadOutcome:
    """Upload every required bucket in order and return the completion token.

    Buckets go out one at a time; the token selection depends on the order
    responses are observed in.
    """
    log = log or logger
    responses: List[Optional[Dict[str, Any]]] = []
    uploaded = 0
    total = len(session.required_batches)
    for index, batch in enumerate(session.required_batches, start=1):
        payload = manifest.select(batch)
        size = sum(len(v) for v in payload.values())
        log.info(f"[upload] Batch {index}/{total}: {len(payload)} files ({size} encoded bytes)")
        response = await asyncio.to_thread(client.upload_batch, session.authorization_token, payload)
        responses.append(response)
        uploaded += len(payload)

    token = completion_token_from(responses)
    log.info(f"[upload] Uploaded {uploaded} files in {total} batches")
    return UploadOutcome(completion_token=token, batches_sent=total, fingerprints_uploaded=uploaded)
