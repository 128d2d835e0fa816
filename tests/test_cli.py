"""
Tests for the command line interface.
"""

import argparse
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from starview import cli
from starview.config import Settings
from starview.download import DownloadResult
from starview.enums import AssetSize, DeviceType
from starview.exceptions import CacheError, DownloadError, OutputPathError
from starview.fetch import FetchOperation, FetchPhase, FetchState
from starview.net.models import AssetPaths
from starview.state_channel import StateChannel

pytestmark = [pytest.mark.unit]


class _StubFetcher:
    """Records the calls run_fetch makes on a Fetcher."""

    def __init__(self, result=None, asset_paths=None):
        self.states = StateChannel(FetchState.not_started())
        self.result = result or DownloadResult()
        self.asset_paths = asset_paths
        self.calls = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def get_latest_asset_info(self, asset_size=AssetSize.FULL):
        self.calls.append(("latest", asset_size))
        return [], self.asset_paths

    async def get_asset_info(self, asset_version, asset_size=AssetSize.FULL):
        self.calls.append(("info", asset_version, asset_size))
        return [], self.asset_paths

    def write_asset_paths(self, out_file, asset_paths):
        self.calls.append(("write", out_file, asset_paths))

    async def download_assets(self, out_path, concurrency=5, asset_version=None):
        self.calls.append(("assets", out_path, concurrency, asset_version))
        self.states.publish(FetchState(FetchOperation.DOWNLOAD_ASSETS, FetchPhase.FINISH))
        return self.result

    async def download_files_list(self, out_path, asset_version=None):
        self.calls.append(("list", out_path, asset_version))
        return self.result


def _args(argv):
    return cli.build_parser().parse_args(argv)


class TestParser:
    """Test build_parser."""

    def test_fetch_assets(self):
        args = _args(["fetch", "assets", "-c", "8", "-d", "ios", "out"])

        assert args.command == "fetch"
        assert args.fetch_command == "assets"
        assert args.concurrency == 8
        assert args.device is DeviceType.IOS
        assert args.out_path == "out"
        assert args.quiet is False

    def test_device_defaults_per_command(self):
        assert _args(["fetch", "path", "out.json"]).default_device is DeviceType.ANDROID
        assert _args(["fetch", "assets", "out"]).default_device is DeviceType.ALL
        assert _args(["fetch", "list", "out"]).default_device is DeviceType.ALL
        assert _args(["fetch", "list", "out"]).device is None

    def test_fetch_path_options(self):
        args = _args(
            ["fetch", "path", "--asset-size", "short", "--asset-version", "2.0", "-q", "p.json"]
        )

        assert args.asset_size is AssetSize.SHORT
        assert args.asset_version == "2.0"
        assert args.quiet is True

    def test_asset_size_defaults_to_full(self):
        assert _args(["fetch", "path", "p.json"]).asset_size is AssetSize.FULL

    def test_invalid_device(self):
        with pytest.raises(SystemExit):
            _args(["fetch", "assets", "-d", "pc", "out"])

    def test_out_path_is_required(self):
        with pytest.raises(SystemExit):
            _args(["fetch", "assets"])


class TestFetchConfig:
    """Test the precedence of flags, settings and command defaults."""

    def test_command_default(self):
        config = cli._fetch_config(_args(["fetch", "assets", "out"]), Settings())
        assert config.device_type is DeviceType.ALL
        assert config.cache_path == Path("starview.cache")

    def test_settings_override_command_default(self):
        settings = Settings(device_type=DeviceType.IOS, cache_path=Path("/tmp/s.cache"))

        config = cli._fetch_config(_args(["fetch", "assets", "out"]), settings)

        assert config.device_type is DeviceType.IOS
        assert config.cache_path == Path("/tmp/s.cache")

    def test_flags_override_settings(self):
        settings = Settings(device_type=DeviceType.IOS, retry_count=7, retry_delay=2.0)
        args = _args(["fetch", "list", "-d", "android", "--cache-path", "c.cache", "out"])

        config = cli._fetch_config(args, settings)

        assert config.device_type is DeviceType.ANDROID
        assert config.cache_path == Path("c.cache")
        assert config.retry_count == 7
        assert config.retry_delay == 2.0


@pytest.mark.asyncio
class TestRunFetch:
    """Test run_fetch with a stubbed Fetcher."""

    @pytest.fixture(autouse=True)
    def _in_tmp_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

    async def test_assets_uses_settings_concurrency(self, mocker):
        fetcher = _StubFetcher()
        create = mocker.patch.object(cli.Fetcher, "create", new=AsyncMock(return_value=fetcher))

        code = await cli.run_fetch(
            _args(["fetch", "assets", "-q", "--asset-version", "2.0", "out"]),
            Settings(concurrency=9),
        )

        assert code == cli.EXIT_SUCCESS
        assert fetcher.calls == [("assets", "out", 9, "2.0")]
        assert fetcher.closed is True
        assert create.await_args.args[0].device_type is DeviceType.ALL

    async def test_concurrency_flag_wins(self, mocker):
        fetcher = _StubFetcher()
        mocker.patch.object(cli.Fetcher, "create", new=AsyncMock(return_value=fetcher))

        await cli.run_fetch(
            _args(["fetch", "assets", "-q", "-c", "2", "out"]), Settings(concurrency=9)
        )

        assert fetcher.calls == [("assets", "out", 2, None)]

    async def test_failed_downloads_fail_the_command(self, mocker):
        fetcher = _StubFetcher(
            result=DownloadResult(errors=[DownloadError("HTTP error 404", url="u")])
        )
        mocker.patch.object(cli.Fetcher, "create", new=AsyncMock(return_value=fetcher))

        code = await cli.run_fetch(_args(["fetch", "list", "-q", "out"]), Settings())

        assert code == cli.EXIT_FAILURE
        assert fetcher.calls == [("list", "out", None)]

    async def test_path_writes_latest_manifest(self, mocker, asset_paths_data):
        manifest = AssetPaths.from_dict(asset_paths_data)
        fetcher = _StubFetcher(asset_paths=manifest)
        mocker.patch.object(cli.Fetcher, "create", new=AsyncMock(return_value=fetcher))

        code = await cli.run_fetch(
            _args(["fetch", "path", "-q", "--asset-size", "short", "p.json"]), Settings()
        )

        assert code == cli.EXIT_SUCCESS
        assert fetcher.calls == [
            ("latest", AssetSize.SHORT),
            ("write", "p.json", manifest),
        ]

    async def test_path_with_explicit_version(self, mocker, asset_paths_data):
        fetcher = _StubFetcher(asset_paths=AssetPaths.from_dict(asset_paths_data))
        mocker.patch.object(cli.Fetcher, "create", new=AsyncMock(return_value=fetcher))

        await cli.run_fetch(
            _args(["fetch", "path", "-q", "--asset-version", "1.5", "p.json"]), Settings()
        )

        assert fetcher.calls[0] == ("info", "1.5", AssetSize.FULL)

    @pytest.mark.parametrize("command", ["assets", "list"])
    async def test_output_path_checked_before_fetcher(self, mocker, tmp_path, command):
        target = tmp_path / "not-a-dir"
        target.write_text("x")
        create = mocker.patch.object(cli.Fetcher, "create", new=AsyncMock())

        with pytest.raises(OutputPathError):
            await cli.run_fetch(_args(["fetch", command, "-q", str(target)]), Settings())

        create.assert_not_awaited()

    async def test_progress_prints_success_message(self, mocker, capsys):
        fetcher = _StubFetcher()
        mocker.patch.object(cli.Fetcher, "create", new=AsyncMock(return_value=fetcher))

        code = await cli.run_fetch(_args(["fetch", "assets", "out"]), Settings())

        assert code == cli.EXIT_SUCCESS
        assert "Successfully downloaded assets to 'out'" in capsys.readouterr().out


class TestMain:
    """Test main."""

    def test_without_command_prints_help(self, capsys):
        assert cli.main([]) == cli.EXIT_FAILURE
        assert "usage: starview" in capsys.readouterr().out

    def test_fetch_without_subcommand(self):
        assert cli.main(["fetch"]) == cli.EXIT_FAILURE

    def test_dispatches_to_run_fetch(self, mocker):
        run_fetch = mocker.patch("starview.cli.run_fetch", new=AsyncMock(return_value=0))

        assert cli.main(["fetch", "assets", "-q", "out"]) == cli.EXIT_SUCCESS

        args, settings = run_fetch.await_args.args
        assert isinstance(args, argparse.Namespace)
        assert args.fetch_command == "assets"
        assert isinstance(settings, Settings)

    def test_log_level_flag(self, mocker):
        mocker.patch("starview.cli.run_fetch", new=AsyncMock(return_value=0))
        set_log_level = mocker.patch("starview.cli.log_utils.set_log_level")

        cli.main(["--log-level", "DEBUG", "fetch", "list", "-q", "out"])

        set_log_level.assert_called_once_with("DEBUG")

    def test_log_dir_from_config(self, mocker, tmp_path):
        config = tmp_path / "starview.yaml"
        config.write_text(f"LOG_DIR: {tmp_path / 'logs'}\n", encoding="utf-8")
        mocker.patch("starview.cli.run_fetch", new=AsyncMock(return_value=0))
        add_file_logging = mocker.patch("starview.cli.log_utils.add_file_logging")

        cli.main(["--config", str(config), "fetch", "list", "-q", "out"])

        add_file_logging.assert_called_once_with(tmp_path / "logs", "INFO")

    def test_invalid_config_file(self, tmp_path):
        config = tmp_path / "starview.yaml"
        config.write_text("- not\n- a mapping\n", encoding="utf-8")

        assert cli.main(["--config", str(config), "fetch", "list", "out"]) == cli.EXIT_FAILURE

    def test_starview_error_is_reported(self, mocker):
        mocker.patch(
            "starview.cli.run_fetch",
            new=AsyncMock(side_effect=CacheError("Could not write cache file")),
        )

        assert cli.main(["fetch", "assets", "-q", "out"]) == cli.EXIT_FAILURE

    def test_output_path_error_is_reported(self, mocker):
        mocker.patch(
            "starview.cli.run_fetch", new=AsyncMock(side_effect=NotADirectoryError("out"))
        )

        assert cli.main(["fetch", "assets", "-q", "out"]) == cli.EXIT_FAILURE

    def test_file_output_path_makes_no_api_call(self, mocker, tmp_path):
        target = tmp_path / "not-a-dir"
        target.write_text("x")
        signup = mocker.patch("starview.fetch.fetcher.GameAPIClient.signup", new=AsyncMock())

        code = cli.main(
            ["fetch", "assets", "-q", "--cache-path", str(tmp_path / "c.cache"), str(target)]
        )

        assert code == cli.EXIT_FAILURE
        signup.assert_not_awaited()
        assert not (tmp_path / "c.cache").exists()
