# src/starview/cli.py

import argparse
import asyncio
import time
from pathlib import Path
from typing import List, Optional

from starview import __version__, log_utils
from starview.config import Settings, load_settings
from starview.enums import AssetSize, DeviceType
from starview.exceptions import StarviewError
from starview.fetch import FetchConfig, Fetcher, FetchOperation, validate_dir
from starview.progress import FetchProgress

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _add_common_arguments(parser: argparse.ArgumentParser, default_device: DeviceType) -> None:
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not display status messages",
    )
    parser.add_argument(
        "--asset-version",
        help="Version of the assets; the latest published version by default",
    )
    parser.add_argument(
        "-d",
        "--device",
        type=DeviceType,
        choices=list(DeviceType),
        default=None,
        metavar="{" + ",".join(d.value for d in DeviceType) + "}",
        help=f"Device type assets are resolved for (default: {default_device.value})",
    )
    parser.set_defaults(default_device=default_device)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="starview", description="Starview - game asset fetcher"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to a starview.yaml configuration file")
    parser.add_argument(
        "--log-level",
        help="Console log level (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch asset information and files")
    fetch_subparsers = fetch_parser.add_subparsers(dest="fetch_command")

    path_parser = fetch_subparsers.add_parser(
        "path", help="Fetch a file that gives information about the game's assets"
    )
    _add_common_arguments(path_parser, DeviceType.ANDROID)
    path_parser.add_argument(
        "--asset-size",
        type=AssetSize,
        choices=list(AssetSize),
        default=AssetSize.FULL,
        metavar="{" + ",".join(s.value for s in AssetSize) + "}",
        help="Size class of the asset manifest (default: full)",
    )
    path_parser.add_argument("--cache-path", help="Path to the starview cache")
    path_parser.add_argument("out_path", help="File the asset paths JSON is written to")

    assets_parser = fetch_subparsers.add_parser("assets", help="Fetch the game's assets")
    _add_common_arguments(assets_parser, DeviceType.ALL)
    assets_parser.add_argument("--cache-path", help="Path to the starview cache")
    assets_parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of files to download at once",
    )
    assets_parser.add_argument("out_path", help="Directory assets are downloaded to")

    list_parser = fetch_subparsers.add_parser("list", help="Fetch files lists")
    _add_common_arguments(list_parser, DeviceType.ALL)
    list_parser.add_argument("--cache-path", help="Path to the starview cache")
    list_parser.add_argument("out_path", help="Directory files lists are downloaded to")

    return parser


def _fetch_config(args: argparse.Namespace, settings: Settings) -> FetchConfig:
    device_type = args.device or settings.device_type or args.default_device
    cache_path = Path(args.cache_path) if args.cache_path else settings.cache_path
    return FetchConfig(
        cache_path=cache_path,
        device_type=device_type,
        api_host=settings.api_host,
        retry_count=settings.retry_count,
        retry_delay=settings.retry_delay,
    )


async def _fetch_path(fetcher: Fetcher, args: argparse.Namespace) -> None:
    if args.asset_version:
        _, asset_paths = await fetcher.get_asset_info(args.asset_version, args.asset_size)
    else:
        _, asset_paths = await fetcher.get_latest_asset_info(args.asset_size)
    fetcher.write_asset_paths(args.out_path, asset_paths)


async def _fetch_assets(
    fetcher: Fetcher, args: argparse.Namespace, settings: Settings
) -> int:
    concurrency = args.concurrency if args.concurrency is not None else settings.concurrency
    result = await fetcher.download_assets(
        args.out_path, concurrency, asset_version=args.asset_version
    )
    return len(result.errors)


async def _fetch_list(fetcher: Fetcher, args: argparse.Namespace) -> int:
    result = await fetcher.download_files_list(
        args.out_path, asset_version=args.asset_version
    )
    return len(result.errors)


_OPERATIONS = {
    "path": FetchOperation.ASSET_INFO,
    "assets": FetchOperation.DOWNLOAD_ASSETS,
    "list": FetchOperation.DOWNLOAD_FILES_LIST,
}

_SUCCESS_MESSAGES = {
    "path": "Successfully wrote asset paths to '{out_path}' in {elapsed:.2f}s",
    "assets": "Successfully downloaded assets to '{out_path}' in {elapsed:.2f}s",
    "list": "Successfully downloaded files lists to '{out_path}' in {elapsed:.2f}s",
}


async def run_fetch(args: argparse.Namespace, settings: Settings) -> int:
    """
    Run a `fetch` subcommand.

    Returns:
        int: Process exit code. Failed downloads make the command fail after
        the rest of the files have been written.
    """
    start_time = time.monotonic()
    config = _fetch_config(args, settings)
    if args.fetch_command in ("assets", "list"):
        validate_dir(args.out_path)
    fetcher = await Fetcher.create(config)

    progress: Optional[FetchProgress] = None
    if not args.quiet:
        progress = FetchProgress(_OPERATIONS[args.fetch_command])
        fetcher.states.subscribe(progress.on_state)

    failed = 0
    try:
        async with fetcher:
            if args.fetch_command == "path":
                await _fetch_path(fetcher, args)
            elif args.fetch_command == "assets":
                failed = await _fetch_assets(fetcher, args, settings)
            else:
                failed = await _fetch_list(fetcher, args)
    finally:
        if progress is not None:
            progress.close()

    if failed:
        log_utils.logger.error(
            f"{failed} file(s) could not be downloaded; run the command again to retry them"
        )
        return EXIT_FAILURE

    if progress is not None:
        progress.console.print(
            "[green]"
            + _SUCCESS_MESSAGES[args.fetch_command].format(
                out_path=args.out_path, elapsed=time.monotonic() - start_time
            )
        )
    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the Starview command-line interface.

    Parses arguments, applies the configuration file and logging options, and
    dispatches the `fetch path`, `fetch assets` and `fetch list` commands.

    Returns:
        int: Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "fetch" or not getattr(args, "fetch_command", None):
        parser.print_help()
        return EXIT_FAILURE

    try:
        settings = load_settings(args.config)
    except StarviewError as e:
        log_utils.logger.error(str(e))
        return EXIT_FAILURE

    log_level = args.log_level or settings.log_level
    if log_level:
        log_utils.set_log_level(log_level)
    if settings.log_dir:
        log_utils.add_file_logging(settings.log_dir, log_level or "INFO")

    try:
        return asyncio.run(run_fetch(args, settings))
    except KeyboardInterrupt:
        log_utils.logger.info("Interrupted")
        return EXIT_INTERRUPTED
    except (StarviewError, OSError) as e:
        log_utils.logger.error(str(e))
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
