import asyncio

import platformdirs
import pytest

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Inject a fake session."
)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG`, suggesting a fake session be injected.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used across the test suite.

    Parameters:
        config: pytest.Config
    """
    config.addinivalue_line("markers", "asyncio: mark test as an asyncio test")
    config.addinivalue_line("markers", "unit: fast, isolated unit tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point every platformdirs location and the starview environment variables at a temporary tree.
    """
    base = tmp_path_factory.mktemp("starview")
    config_dir = base / "config"
    cache_dir = base / "cache"
    log_dir = base / "log"

    for path in (config_dir, cache_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.delenv("STARVIEW_CONFIG", raising=False)
    monkeypatch.delenv("STARVIEW_LOG_LEVEL", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )


def pytest_runtest_setup():
    """
    Replace aiohttp's request entry points with a blocker so no test reaches the network.
    """
    import aiohttp

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.post = _async_block_network  # type: ignore[assignment]


@pytest.fixture
def no_sleep(monkeypatch):
    """
    Make asyncio.sleep instant and record the requested delays.

    Returns:
        list: Delays passed to asyncio.sleep, in call order.
    """
    delays = []
    real_sleep = asyncio.sleep

    async def _fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", _fake_sleep)
    return delays


@pytest.fixture
def asset_paths_data():
    """
    Provide a raw asset manifest as the server returns it for one device.
    """
    return {
        "info": {
            "client_asset_version": "1.0",
            "target_asset_version": "2.0",
            "eventual_target_asset_version": "2.0",
            "is_initial": False,
            "latest_maj_first_version": "1.0",
        },
        "full": {
            "version": "2.0",
            "archive": [
                {
                    "location": "https://cdn.example.com/patch/gf/upload_assets/full/a.bin",
                    "size": 100,
                    "sha256": "H1",
                }
            ],
        },
        "diff": [],
        "asset_version_hash": "hash-2.0",
    }


@pytest.fixture
def version_info_data():
    return {
        "base_url": "https://cdn.example.com/patch/gf/upload_assets/",
        "files_list": "https://cdn.example.com/patch/gf/upload_assets/entities/android/files.csv",
        "total_size": 100,
        "delayed_assets_size": 0,
    }
