"""
asset_deploy - Deploy a Worker script and its static assets.

This package contains:
- fingerprint: Truncated SHA-256 fingerprints for a local asset tree
- manifest: Manifest (path -> hash/size) and the per-hash content store
- session: Upload session negotiation
- uploader: Sequential bucket uploads and completion token tracking
- assemble: Final script update request
- client: HTTP client for the remote API
- config: Deploy configuration and credential providers
- pipeline: The deploy() entry point

Usage:
    from asset_deploy import DeployConfig, AssetsConfig, deploy
"""
from asset_deploy._version import __version__
from asset_deploy.config import (
    AssetsConfig,
    CredentialProvider,
    DeployConfig,
    DeployVariant,
    DotenvCredentialProvider,
    EnvCredentialProvider,
)
from asset_deploy.pipeline import DeployResult, deploy, deploy_sync
from asset_deploy.logger import ConfigurationError, DeployError, ProtocolError, ValidationError

__all__ = [
    "__version__",
    "AssetsConfig",
    "CredentialProvider",
    "DeployConfig",
    "DeployVariant",
    "DotenvCredentialProvider",
    "EnvCredentialProvider",
    "DeployResult",
    "deploy",
    "deploy_sync",
    "ConfigurationError",
    "DeployError",
    "ProtocolError",
    "ValidationError",
]
