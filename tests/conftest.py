import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so `import asset_deploy` works locally
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeWorkersApi:
    """In-memory stand-in for WorkersApiClient that records every call."""

    def __init__(self, session=None, batch_responses=None, update_result=None):
        self.session_result = session if session is not None else {"jwt": "session-jwt", "buckets": []}
        self.batch_responses = list(batch_responses or [])
        self.update_result = update_result if update_result is not None else {"id": "script"}
        self.calls = []
        self.closed = False

    def create_upload_session(self, script_name, manifest):
        self.calls.append(("create_upload_session", script_name, manifest))
        return self.session_result

    def upload_batch(self, jwt, payload):
        self.calls.append(("upload_batch", jwt, dict(payload)))
        if self.batch_responses:
            return self.batch_responses.pop(0)
        return {}

    def update_script(self, script_name, metadata, files):
        self.calls.append(("update_script", script_name, metadata, files))
        return self.update_result

    def close(self):
        self.closed = True

    def named(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_api():
    return FakeWorkersApi()


@pytest.fixture
def make_fake_api():
    return FakeWorkersApi


@pytest.fixture(autouse=True)
def _clear_cloudflare_env(monkeypatch):
    """Keep real credentials in the developer's shell from leaking into tests."""
    for name in ("CLOUDFLARE_API_TOKEN", "CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_BASE_URL",
                 "CLOUDFLARE_API_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def asset_dir(tmp_path):
    root = tmp_path / "public"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_text("<h1>hi</h1>")
    (root / "css" / "site.css").write_text("body{}")
    return root
