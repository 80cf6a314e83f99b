"""
asset_deploy/config.py - Deploy configuration, variants and credential resolution.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from dotenv import dotenv_values

from asset_deploy.logger import ConfigurationError, ValidationError, safe_float

API_TOKEN_ENV = "CLOUDFLARE_API_TOKEN"
ACCOUNT_ID_ENV = "CLOUDFLARE_ACCOUNT_ID"

DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"

HTML_HANDLING_MODES = {
    "auto-trailing-slash",
    "force-trailing-slash",
    "drop-trailing-slash",
    "none",
}
NOT_FOUND_HANDLING_MODES = {"none", "404-page", "single-page-application"}


def api_base_url() -> str:
    return (os.environ.get("CLOUDFLARE_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/")


def api_timeout() -> float:
    return safe_float(os.environ.get("CLOUDFLARE_API_TIMEOUT"), 30.0, context="CLOUDFLARE_API_TIMEOUT")


@dataclass
class AssetsConfig:
    """Static assets to sync, plus the serving options passed through to the remote."""
    directory: Union[str, Path]
    binding: Optional[str] = None
    headers: Optional[str] = None  # contents of a _headers file
    redirects: Optional[str] = None  # contents of a _redirects file
    html_handling: Optional[str] = None
    not_found_handling: Optional[str] = None
    run_worker_first: Optional[Union[bool, List[str]]] = None
    serve_directly: Optional[bool] = None

    def serving_config(self) -> Dict[str, Any]:
        """Asset serving options in wire form; unset options are omitted."""
        raw = {
            "_headers": self.headers,
            "_redirects": self.redirects,
            "html_handling": self.html_handling,
            "not_found_handling": self.not_found_handling,
            "run_worker_first": self.run_worker_first,
            "serve_directly": self.serve_directly,
        }
        return {k: v for k, v in raw.items() if v is not None}

    def validate(self) -> None:
        if not str(self.directory).strip():
            raise ValidationError("assets.directory must not be empty")
        if self.html_handling is not None and self.html_handling not in HTML_HANDLING_MODES:
            raise ValidationError(
                f"assets.html_handling must be one of {sorted(HTML_HANDLING_MODES)}, got {self.html_handling!r}"
            )
        if self.not_found_handling is not None and self.not_found_handling not in NOT_FOUND_HANDLING_MODES:
            raise ValidationError(
                f"assets.not_found_handling must be one of {sorted(NOT_FOUND_HANDLING_MODES)}, "
                f"got {self.not_found_handling!r}"
            )
        rwf = self.run_worker_first
        if rwf is not None and not isinstance(rwf, bool):
            if not isinstance(rwf, list) or not all(isinstance(r, str) for r in rwf):
                raise ValidationError("assets.run_worker_first must be a bool or a list of route patterns")


class DeployVariant(str, Enum):
    """Which of the four deploy shapes a config describes."""
    SCRIPT_ONLY = "script_only"
    ASSETS_ONLY = "assets_only"
    SCRIPT_AND_ASSETS = "script_and_assets"
    EMPTY = "empty"


@dataclass
class DeployConfig:
    name: str
    compatibility_date: str
    main: Optional[Union[str, Path]] = None
    assets: Optional[AssetsConfig] = None

    @property
    def variant(self) -> DeployVariant:
        if self.main and self.assets:
            return DeployVariant.SCRIPT_AND_ASSETS
        if self.main:
            return DeployVariant.SCRIPT_ONLY
        if self.assets:
            return DeployVariant.ASSETS_ONLY
        return DeployVariant.EMPTY

    def validate(self) -> None:
        if not (self.name or "").strip():
            raise ValidationError("name must not be empty")
        if not (self.compatibility_date or "").strip():
            raise ValidationError("compatibility_date must not be empty")
        if self.assets is not None:
            self.assets.validate()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeployConfig":
        """Build a config from a plain mapping, e.g. a parsed wrangler-style JSON file.

        Accepts both ``_headers``/``_redirects`` and ``headers``/``redirects``.
        """
        assets_raw = data.get("assets")
        assets = None
        if assets_raw:
            if "directory" not in assets_raw:
                raise ValidationError("assets.directory is required when assets are configured")
            assets = AssetsConfig(
                directory=assets_raw["directory"],
                binding=assets_raw.get("binding"),
                headers=assets_raw.get("_headers", assets_raw.get("headers")),
                redirects=assets_raw.get("_redirects", assets_raw.get("redirects")),
                html_handling=assets_raw.get("html_handling"),
                not_found_handling=assets_raw.get("not_found_handling"),
                run_worker_first=assets_raw.get("run_worker_first"),
                serve_directly=assets_raw.get("serve_directly"),
            )
        try:
            name = data["name"]
            compatibility_date = data["compatibility_date"]
        except KeyError as e:
            raise ValidationError(f"missing required config field: {e.args[0]}") from e
        config = cls(
            name=name,
            compatibility_date=compatibility_date,
            main=data.get("main"),
            assets=assets,
        )
        config.validate()
        return config


class CredentialProvider(Protocol):
    def get(self, name: str) -> Optional[str]:
        ...


class EnvCredentialProvider:
    """Reads credentials from the process environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ if environ is not None else os.environ

    def get(self, name: str) -> Optional[str]:
        value = (self._environ.get(name) or "").strip()
        return value or None


class DotenvCredentialProvider:
    """Reads credentials from a .env file, then from the process environment."""

    def __init__(self, dotenv_path: Union[str, Path] = ".env"):
        self._values = {k: v for k, v in dotenv_values(dotenv_path).items() if v}
        self._fallback = EnvCredentialProvider()

    def get(self, name: str) -> Optional[str]:
        value = (self._values.get(name) or "").strip()
        return value or self._fallback.get(name)


@dataclass(frozen=True)
class Credentials:
    api_token: str = field(repr=False)
    account_id: str


def resolve_credentials(
    api_token: Optional[str] = None,
    account_id: Optional[str] = None,
    provider: Optional[CredentialProvider] = None,
) -> Credentials:
    """Explicit values win; otherwise ask the provider. Both must end up set."""
    provider = provider if provider is not None else EnvCredentialProvider()
    token = api_token or provider.get(API_TOKEN_ENV)
    account = account_id or provider.get(ACCOUNT_ID_ENV)
    if not token or not account:
        missing = [n for n, v in ((API_TOKEN_ENV, token), (ACCOUNT_ID_ENV, account)) if not v]
        raise ConfigurationError(f"missing credentials: {', '.join(missing)}")
    return Credentials(api_token=token, account_id=account)
