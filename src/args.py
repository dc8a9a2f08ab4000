"""Argument parsing functionality for pyspm."""

import argparse
from constants import Channels, Constants


def _add_global_options(parser):
    parser.add_argument("--home",
                        dest="HOME",
                        help=f"Store root for installed modules and caches (default: {Constants.HOME})",
                        action="store",
                        type=str)
    parser.add_argument("--registry",
                        dest="REGISTRY_URL",
                        help="Registry base URL",
                        action="store",
                        type=str)
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to a YAML config file",
                        action="store",
                        type=str)
    parser.add_argument("--channel",
                        dest="CHANNEL",
                        help="Release channel used for self-update checks",
                        action="store",
                        type=str,
                        choices=[c.value for c in Channels])
    parser.add_argument("--http-backend",
                        dest="HTTP_BACKEND",
                        help="HTTP client implementation",
                        action="store",
                        type=str,
                        choices=["aiohttp", "requests"])
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--no-update-check",
                        dest="NO_UPDATE_CHECK",
                        help="Skip the pyspm release check after installing.",
                        action="store_true")


def build_parser():
    """Build the top-level parser with one subcommand per action."""
    parser = argparse.ArgumentParser(
        prog="pyspm",
        description="pyspm - install and cache registry script packages",
        add_help=True,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {Constants.VERSION}")
    _add_global_options(parser)

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p_install = sub.add_parser("install", help="Install a package (owner/name[@version])")
    p_install.add_argument("reference", help="Package reference, e.g. acme/widgets@latest")

    p_resolve = sub.add_parser("resolve", help="Print the concrete version a reference resolves to")
    p_resolve.add_argument("reference")

    p_versions = sub.add_parser("versions", help="List versions published for owner/name")
    p_versions.add_argument("package")

    sub.add_parser("list", help="List installed packages")

    p_update = sub.add_parser("self-update", help="Check for a newer pyspm release and stage it")
    p_update.add_argument("--check",
                          dest="CHECK_ONLY",
                          help="Only print the staged update, do not query the registry.",
                          action="store_true")

    p_cache = sub.add_parser("cache", help="Inspect or maintain caches")
    cache_sub = p_cache.add_subparsers(dest="cache_command", metavar="ACTION")
    cache_sub.required = True
    p_get = cache_sub.add_parser("get", help="Print a cached value")
    p_get.add_argument("namespace")
    p_get.add_argument("key")
    p_get.add_argument("--ttl",
                       dest="TTL_MINUTES",
                       help="Treat entries older than this many minutes as expired",
                       type=float)
    p_put = cache_sub.add_parser("put", help="Store a value (JSON if it parses, else text)")
    p_put.add_argument("namespace")
    p_put.add_argument("key")
    p_put.add_argument("value")
    cache_sub.add_parser("purge", help="Run the retention sweep over every namespace")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
