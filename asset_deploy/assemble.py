"""
asset_deploy/assemble.py - Builds and submits the final script update.

The shape of the update depends on the deploy variant:

- SCRIPT_ONLY: module body, main module reference and compatibility date.
- SCRIPT_AND_ASSETS: as above, plus bindings and the assets section.
- ASSETS_ONLY: an empty module part and the assets section, no main module.
- EMPTY: nothing to send.

The assets section carries the completion token when assets were uploaded;
otherwise ``keep_assets`` tells the remote to leave the deployed assets alone.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from asset_deploy.client import MODULE_CONTENT_TYPE, FilePart
from asset_deploy.config import AssetsConfig, DeployConfig, DeployVariant

MAIN_MODULE_NAME = "index.js"


@dataclass
class DeploymentRequest:
    script_name: str
    metadata: Dict[str, Any]
    files: Dict[str, FilePart] = field(repr=False)

    @property
    def keep_assets(self) -> Optional[bool]:
        return self.metadata.get("keep_assets")


def _module_part(source: bytes) -> FilePart:
    return (MAIN_MODULE_NAME, source, MODULE_CONTENT_TYPE)


def _assets_metadata(assets: AssetsConfig, completion_token: Optional[str]) -> Dict[str, Any]:
    section: Dict[str, Any] = {"config": assets.serving_config()}
    if completion_token:
        section["jwt"] = completion_token
    return {"assets": section, "keep_assets": not completion_token}


def _bindings(assets: AssetsConfig):
    if assets.binding:
        return [{"name": assets.binding, "type": "assets"}]
    return []


def build_deployment_request(
    config: DeployConfig,
    completion_token: Optional[str] = None,
    main_source: Optional[bytes] = None,
) -> Optional[DeploymentRequest]:
    """Compose the script update for ``config``; None for the EMPTY variant."""
    variant = config.variant
    metadata: Dict[str, Any] = {"compatibility_date": config.compatibility_date}

    if variant is DeployVariant.SCRIPT_ONLY:
        metadata["main_module"] = MAIN_MODULE_NAME
        return DeploymentRequest(config.name, metadata, {MAIN_MODULE_NAME: _module_part(main_source or b"")})

    if variant is DeployVariant.SCRIPT_AND_ASSETS:
        metadata["main_module"] = MAIN_MODULE_NAME
        metadata["bindings"] = _bindings(config.assets)
        metadata.update(_assets_metadata(config.assets, completion_token))
        return DeploymentRequest(config.name, metadata, {MAIN_MODULE_NAME: _module_part(main_source or b"")})

    if variant is DeployVariant.ASSETS_ONLY:
        metadata.update(_assets_metadata(config.assets, completion_token))
        return DeploymentRequest(config.name, metadata, {MAIN_MODULE_NAME: _module_part(b"")})

    if variant is DeployVariant.EMPTY:
        return None

    raise ValueError(f"unhandled deploy variant: {variant!r}")


async def read_main_source(config: DeployConfig) -> Optional[bytes]:
    if not config.main:
        return None
    return await asyncio.to_thread(Path(config.main).read_bytes)


async def submit_deployment(client, request: DeploymentRequest) -> Any:
    return await asyncio.to_thread(client.update_script, request.script_name, request.metadata, request.files)
