"""pyspm - install registry script packages once and serve them from a local store.

    Returns:
        int: Exit code
"""
import asyncio
import json
import logging
import sys

from constants import ExitCodes, Constants
from common.blob_store import FileBlobStore
from common.errors import (
    FetchError,
    InstallFailed,
    MalformedReference,
    ManifestUnavailable,
    ModuleLoadFailed,
    PyspmError,
    ReservedNamespace,
)
from common.logging_utils import add_file_handler, configure_logging
from args import parse_args
from cli_config import load_runtime_config
from cache.ledger import PurgeLedger
from cache.store import Cache
from installer.manager import PackageManager
from versioning.models import CheckFailed, UpdateAvailable
from versioning.parser import format_reference
from versioning.selfupdate import SelfUpdateChecker

logger = logging.getLogger("pyspm")

_EXIT_FOR_ERROR = (
    (MalformedReference, ExitCodes.USAGE_ERROR),
    (ReservedNamespace, ExitCodes.USAGE_ERROR),
    (ManifestUnavailable, ExitCodes.RESOLUTION_ERROR),
    (InstallFailed, ExitCodes.INSTALL_ERROR),
    (ModuleLoadFailed, ExitCodes.INSTALL_ERROR),
    (FetchError, ExitCodes.CONNECTION_ERROR),
)


def exit_code_for(exc: Exception) -> int:
    """Map an error to the process exit code."""
    for error_type, code in _EXIT_FOR_ERROR:
        if isinstance(exc, error_type):
            return code.value
    return ExitCodes.FILE_ERROR.value


async def check_for_update(manager: PackageManager) -> None:
    """Run the release check; never lets a failure reach the caller."""
    checker = SelfUpdateChecker(manager.registry, manager.store)
    await checker.check_for_update(Constants.VERSION)


async def cmd_install(args, manager: PackageManager) -> int:
    record = await manager.install(args.reference)
    print(f"{format_reference(record.identifier)} -> {record.path}")
    if not args.NO_UPDATE_CHECK:
        await check_for_update(manager)
    return ExitCodes.SUCCESS.value


async def cmd_resolve(args, manager: PackageManager) -> int:
    identifier = await manager.resolve(args.reference)
    print(identifier.version)
    return ExitCodes.SUCCESS.value


async def cmd_versions(args, manager: PackageManager) -> int:
    for version in await manager.versions(args.package):
        print(version)
    return ExitCodes.SUCCESS.value


async def cmd_list(args, manager: PackageManager) -> int:  # pylint: disable=unused-argument
    for identifier in manager.list_installed():
        print(format_reference(identifier))
    return ExitCodes.SUCCESS.value


async def cmd_self_update(args, manager: PackageManager) -> int:
    checker = SelfUpdateChecker(manager.registry, manager.store)
    if args.CHECK_ONLY:
        staged = checker.read_staged_update()
        print(json.dumps(staged, indent=2) if staged else "No update staged.")
        return ExitCodes.SUCCESS.value

    status = await checker.check_for_update(Constants.VERSION)
    if isinstance(status, UpdateAvailable):
        print(f"Update available: {status.current_version} -> {status.latest_version} ({status.channel})")
        print(f"Staged for the updater: {status.source_url}")
    elif isinstance(status, CheckFailed):
        print(f"Update check failed: {status.reason}")
        return ExitCodes.CONNECTION_ERROR.value
    else:
        print(f"pyspm {status.version} is up to date.")
    return ExitCodes.SUCCESS.value


async def cmd_cache(args, manager: PackageManager) -> int:
    if args.cache_command == "purge":
        purged = PurgeLedger(manager.store).sweep()
        print(f"Purged {len(purged)} entries.")
        return ExitCodes.SUCCESS.value

    cache = Cache(args.namespace, manager.store)
    if args.cache_command == "get":
        value = cache.read(args.key, args.TTL_MINUTES)
        if value is None:
            return ExitCodes.FILE_ERROR.value
        print(value if isinstance(value, str) else json.dumps(value, indent=2))
        return ExitCodes.SUCCESS.value

    try:
        value = json.loads(args.value)
    except ValueError:
        value = args.value
    cache.write(args.key, value)
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "install": cmd_install,
    "resolve": cmd_resolve,
    "versions": cmd_versions,
    "list": cmd_list,
    "self-update": cmd_self_update,
    "cache": cmd_cache,
}


async def run(args) -> int:
    """Dispatch the parsed command with a manager bound to the configured store."""
    manager = PackageManager(FileBlobStore(Constants.HOME))
    async with manager:
        return await COMMANDS[args.command](args, manager)


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)
    load_runtime_config(args)

    try:
        return asyncio.run(run(args))
    except PyspmError as exc:
        logger.error("%s", exc)
        return exit_code_for(exc)
    except ValueError as exc:
        logger.error("%s", exc)
        return ExitCodes.USAGE_ERROR.value
    except OSError as exc:
        logger.error("Store error: %s", exc)
        return ExitCodes.FILE_ERROR.value


if __name__ == "__main__":
    sys.exit(main())
