"""
asset_deploy/pipeline.py - Deploy a Worker script and its static assets.

Example usage:
    from asset_deploy import AssetsConfig, DeployConfig, deploy_sync

    deploy_sync(DeployConfig(
        name="my-worker",
        compatibility_date="2024-09-23",
        main="dist/index.js",
        assets=AssetsConfig(directory="public", binding="ASSETS"),
    ))

Credentials come from the arguments, falling back to CLOUDFLARE_API_TOKEN
and CLOUDFLARE_ACCOUNT_ID.
"""
from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Any, Optional

from asset_deploy.assemble import build_deployment_request, read_main_source, submit_deployment
from asset_deploy.client import WorkersApiClient
from asset_deploy.config import CredentialProvider, DeployConfig, DeployVariant, resolve_credentials
from asset_deploy.fingerprint import afingerprint_directory
from asset_deploy.logger import ContextLogger, get_logger, safe_bool
from asset_deploy.manifest import abuild_manifest
from asset_deploy.session import negotiate_upload_session
from asset_deploy.uploader import upload_batches

logger = get_logger(__name__, json_format=safe_bool(os.environ.get("LOG_JSON"), False))


@dataclass
class DeployResult:
    variant: DeployVariant
    files: int = 0
    distinct_fingerprints: int = 0
    batches_sent: int = 0
    fingerprints_uploaded: int = 0
    keep_assets: Optional[bool] = None
    result: Any = None

    @property
    def deployed(self) -> bool:
        return self.variant is not DeployVariant.EMPTY


async def deploy(
    config: DeployConfig,
    api_token: Optional[str] = None,
    account_id: Optional[str] = None,
    *,
    credentials: Optional[CredentialProvider] = None,
    client=None,
) -> DeployResult:
    """Sync assets (if any) and update the script.

    Args:
        config: What to deploy.
        api_token / account_id: Explicit credentials; missing ones are looked up
            through ``credentials`` (environment by default).
        credentials: Provider with ``get(name) -> Optional[str]``.
        client: Pre-built API client; by default a WorkersApiClient is created
            and closed for this call.

    Raises:
        ConfigurationError: credentials missing after fallback.
        ValidationError: malformed config.
        OSError: an asset or the script source could not be read.
        ProtocolError: the remote rejected a step or never completed the upload.
    """
    creds = resolve_credentials(api_token, account_id, credentials)
    config.validate()
    variant = config.variant
    log = ContextLogger(logger, script=config.name, account=creds.account_id)
    outcome = DeployResult(variant=variant)

    if variant is DeployVariant.EMPTY:
        log.warning("[deploy] Neither main nor assets configured; nothing to deploy")
        return outcome

    main_source = await read_main_source(config)

    owns_client = client is None
    api = client if client is not None else WorkersApiClient(creds.api_token, creds.account_id)
    try:
        completion_token = None
        if config.assets is not None:
            manifest = await abuild_manifest(afingerprint_directory(config.assets.directory))
            outcome.files = len(manifest)
            outcome.distinct_fingerprints = len(manifest.content)
            log.info(f"[deploy] Fingerprinted {outcome.files} files from {config.assets.directory}")

            with await negotiate_upload_session(api, config.name, manifest, log) as session:
                if session.needs_upload:
                    uploaded = await upload_batches(api, session, manifest, log)
                    completion_token = uploaded.completion_token
                    outcome.batches_sent = uploaded.batches_sent
                    outcome.fingerprints_uploaded = uploaded.fingerprints_uploaded

        request = build_deployment_request(config, completion_token, main_source)
        outcome.keep_assets = request.keep_assets
        log.info(f"[deploy] Updating script ({variant.value}, keep_assets={outcome.keep_assets})")
        outcome.result = await submit_deployment(api, request)
        log.info("[deploy] Script updated")
        return outcome
    finally:
        if owns_client:
            api.close()


def deploy_sync(config: DeployConfig, api_token: Optional[str] = None, account_id: Optional[str] = None,
                **kwargs) -> DeployResult:
    """Run deploy() from synchronous code."""
    return asyncio.run(deploy(config, api_token, account_id, **kwargs))
