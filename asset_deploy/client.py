"""
asset_deploy/client.py - Thin client for the Workers script and asset upload API.

Wraps a requests.Session. Every call returns the ``result`` member of the
API envelope or raises ProtocolError; transport errors from requests
propagate as-is.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from asset_deploy.config import api_base_url, api_timeout
from asset_deploy.logger import ProtocolError, get_logger

logger = get_logger(__name__)

MODULE_CONTENT_TYPE = "application/javascript+module"

# (filename, body, content type) as accepted by requests' ``files=``
FilePart = Tuple[Optional[str], Any, str]


class WorkersApiClient:
    """Client for one account's Workers endpoints."""

    def __init__(self, api_token: str, account_id: str, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, max_retries: int = 0):
        self.account_id = account_id
        self.base_url = (base_url or api_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else api_timeout()

        self.session = requests.Session()
        self.session.headers["Authorization"] = f"Bearer {api_token}"
        # Transport retries stay opt-in; the deploy itself never retries.
        if max_retries > 0:
            # raise_on_status=False: the last error response still reaches _unwrap
            retry_strategy = Retry(total=max_retries, backoff_factor=1,
                                   status_forcelist=[429, 500, 502, 503, 504], raise_on_status=False)
            adapter = HTTPAdapter(max_retries=retry_strategy)
        else:
            adapter = HTTPAdapter()
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.session.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/accounts/{self.account_id}{path}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self.session.request(method, self._url(path), timeout=(10, self.timeout), **kwargs)
        logger.debug(f"[api] {method} {path} -> {response.status_code}")
        return self._unwrap(response, f"{method} {path}")

    @staticmethod
    def _unwrap(response: requests.Response, what: str) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            if 200 <= response.status_code < 300:
                raise ProtocolError(f"{what}: response is not a JSON object", status_code=response.status_code)
            raise ProtocolError(
                f"{what} failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if response.status_code >= 400 or body.get("success") is False:
            errors = body.get("errors") or []
            first = errors[0] if errors and isinstance(errors[0], dict) else {}
            message = first.get("message", "Unknown error")
            raise ProtocolError(
                f"{what} failed with status {response.status_code}: {message}",
                status_code=response.status_code,
                code=first.get("code"),
            )
        return body.get("result")

    def create_upload_session(self, script_name: str, manifest: Mapping[str, Any]) -> Dict[str, Any]:
        """Submit the asset manifest; returns ``{"jwt", "buckets"}``."""
        result = self._request(
            "POST",
            f"/workers/scripts/{script_name}/assets-upload-session",
            json={"manifest": manifest},
        )
        if not isinstance(result, dict):
            raise ProtocolError("upload session response carried no result")
        return result

    def upload_batch(self, jwt: str, payload: Mapping[str, str]) -> Dict[str, Any]:
        """Upload base64-encoded file contents keyed by fingerprint under the session token."""
        files = {fp: (None, encoded) for fp, encoded in payload.items()}
        result = self._request(
            "POST",
            "/workers/assets/upload",
            params={"base64": "true"},
            files=files,
            headers={"Authorization": f"Bearer {jwt}"},
        )
        return result if isinstance(result, dict) else {}

    def update_script(self, script_name: str, metadata: Mapping[str, Any],
                      files: Mapping[str, FilePart]) -> Any:
        """Upload script metadata plus module parts as one multipart request."""
        parts: Dict[str, FilePart] = {
            "metadata": (None, json.dumps(metadata), "application/json"),
        }
        parts.update(files)
        return self._request("PUT", f"/workers/scripts/{script_name}", files=parts)
