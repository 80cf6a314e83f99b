import pytest

from asset_deploy.assemble import MAIN_MODULE_NAME, build_deployment_request, read_main_source, submit_deployment
from asset_deploy.client import MODULE_CONTENT_TYPE
from asset_deploy.config import AssetsConfig, DeployConfig


def _config(main=True, assets=True, **asset_opts):
    return DeployConfig(
        name="worker",
        compatibility_date="2024-09-23",
        main="index.js" if main else None,
        assets=AssetsConfig(directory="public", **asset_opts) if assets else None,
    )


def test_script_only_has_no_assets_section():
    req = build_deployment_request(_config(assets=False), main_source=b"export default {}")
    assert req.metadata == {"compatibility_date": "2024-09-23", "main_module": MAIN_MODULE_NAME}
    assert req.files[MAIN_MODULE_NAME] == (MAIN_MODULE_NAME, b"export default {}", MODULE_CONTENT_TYPE)
    assert req.keep_assets is None


def test_script_and_assets_with_completion_token():
    req = build_deployment_request(
        _config(binding="ASSETS", html_handling="none", serve_directly=True),
        completion_token="done",
        main_source=b"code",
    )
    assert req.metadata["main_module"] == MAIN_MODULE_NAME
    assert req.metadata["bindings"] == [{"name": "ASSETS", "type": "assets"}]
    assert req.metadata["assets"] == {
        "config": {"html_handling": "none", "serve_directly": True},
        "jwt": "done",
    }
    assert req.metadata["keep_assets"] is False


def test_unchanged_assets_keep_existing():
    req = build_deployment_request(_config(), completion_token=None, main_source=b"code")
    assert req.metadata["keep_assets"] is True
    assert "jwt" not in req.metadata["assets"]
    assert req.metadata["bindings"] == []
    assert req.files[MAIN_MODULE_NAME][1] == b"code"


def test_assets_only_sends_empty_module_without_main():
    req = build_deployment_request(_config(main=False, binding="ASSETS"), completion_token="done")
    assert "main_module" not in req.metadata
    assert "bindings" not in req.metadata
    assert req.metadata["assets"]["jwt"] == "done"
    assert req.files[MAIN_MODULE_NAME][1] == b""


def test_serving_config_uses_wire_names():
    req = build_deployment_request(
        _config(headers="/*\n  X-Test: 1", redirects="/a /b 301", not_found_handling="404-page",
                run_worker_first=["/api/*"]),
        main_source=b"",
    )
    assert req.metadata["assets"]["config"] == {
        "_headers": "/*\n  X-Test: 1",
        "_redirects": "/a /b 301",
        "not_found_handling": "404-page",
        "run_worker_first": ["/api/*"],
    }


def test_empty_config_builds_nothing():
    assert build_deployment_request(_config(main=False, assets=False)) is None


@pytest.mark.asyncio
async def test_read_main_source(tmp_path):
    main = tmp_path / "worker.js"
    main.write_bytes(b"export default {}")
    config = DeployConfig(name="w", compatibility_date="2024-01-01", main=main)
    assert await read_main_source(config) == b"export default {}"
    assert await read_main_source(DeployConfig(name="w", compatibility_date="2024-01-01")) is None


@pytest.mark.asyncio
async def test_submit_passes_request_through(fake_api):
    req = build_deployment_request(_config(assets=False), main_source=b"x")
    assert await submit_deployment(fake_api, req) == {"id": "script"}
    (call,) = fake_api.named("update_script")
    assert call[1:] == ("worker", req.metadata, req.files)
