import pytest

from asset_deploy.fingerprint import FileEntry, fingerprint_bytes
from asset_deploy.logger import ProtocolError
from asset_deploy.manifest import AssetManifest
from asset_deploy.session import UploadSession, negotiate_upload_session, parse_upload_session


def _manifest(*blobs):
    manifest = AssetManifest()
    for i, blob in enumerate(blobs):
        manifest.add(FileEntry(f"/f{i}", fingerprint_bytes(blob), len(blob), blob))
    return manifest


def test_missing_buckets_means_nothing_to_upload():
    session = parse_upload_session({"jwt": "t", "buckets": None}, _manifest(b"a"))
    assert not session.needs_upload
    assert session.required_batches == []


def test_buckets_are_kept_in_order():
    m = _manifest(b"a", b"b", b"c")
    fa, fb, fc = (fingerprint_bytes(x) for x in (b"a", b"b", b"c"))
    session = parse_upload_session({"jwt": "t", "buckets": [[fc], [fa, fb]]}, m)
    assert session.required_batches == [[fc], [fa, fb]]
    assert session.missing_count == 3
    assert session.authorization_token == "t"


def test_empty_buckets_are_dropped():
    session = parse_upload_session({"jwt": "t", "buckets": [[], []]}, _manifest(b"a"))
    assert not session.needs_upload


def test_unknown_fingerprint_is_rejected():
    with pytest.raises(ProtocolError, match="unknown fingerprint"):
        parse_upload_session({"jwt": "t", "buckets": [["f" * 32]]}, _manifest(b"a"))


def test_overlapping_buckets_are_rejected():
    fa = fingerprint_bytes(b"a")
    with pytest.raises(ProtocolError, match="more than one bucket"):
        parse_upload_session({"jwt": "t", "buckets": [[fa], [fa]]}, _manifest(b"a"))


def test_buckets_without_token_are_rejected():
    fa = fingerprint_bytes(b"a")
    with pytest.raises(ProtocolError, match="no token"):
        parse_upload_session({"buckets": [[fa]]}, _manifest(b"a"))


def test_token_is_released_when_scope_exits():
    with UploadSession("secret", [["x"]]) as session:
        assert session.authorization_token == "secret"
    with pytest.raises(ProtocolError):
        session.authorization_token
    assert "secret" not in repr(session)


def test_token_is_released_on_error():
    session = UploadSession("secret", [])
    with pytest.raises(RuntimeError):
        with session:
            raise RuntimeError("boom")
    with pytest.raises(ProtocolError):
        session.authorization_token


@pytest.mark.asyncio
async def test_negotiate_sends_manifest(fake_api):
    m = _manifest(b"a")
    fa = fingerprint_bytes(b"a")
    fake_api.session_result = {"jwt": "t", "buckets": [[fa]]}

    session = await negotiate_upload_session(fake_api, "worker", m)

    (call,) = fake_api.named("create_upload_session")
    assert call[1] == "worker"
    assert call[2] == {"/f0": {"hash": fa, "size": 1}}
    assert session.required_batches == [[fa]]


@pytest.mark.asyncio
async def test_negotiate_propagates_client_errors(fake_api):
    def boom(*a, **k):
        raise ConnectionError("down")

    fake_api.create_upload_session = boom
    with pytest.raises(ConnectionError):
        await negotiate_upload_session(fake_api, "worker", _manifest(b"a"))


def test_non_string_fingerprint_is_rejected():
    with pytest.raises(ProtocolError, match="non-string"):
        parse_upload_session({"jwt": "t", "buckets": [[["nested"]]]}, _manifest(b"a"))
