"""
Command-line entry point for the OAI-PMH harvester.

Provides subcommands to harvest records, list the metadata formats of a
repository, and show the repository name.
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional, TextIO

from oaiharvest.config.models import LOG_LEVELS
from oaiharvest.logging import configure_logging_from_args, format_exception_summary, get_logger


def build_parser() -> argparse.ArgumentParser:
    """Argument parser with the global options and one subparser per command."""
    parser = argparse.ArgumentParser(
        prog="oaiharvest",
        description="Harvest OAI-PMH repositories into normalized DataCite-style documents",
        epilog="Use 'oaiharvest <command> --help' for more information on a specific command.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a JSON or YAML configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Log level; takes precedence over --verbose and the config file",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also append log records to this file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        required=True,
    )

    harvest_parser = subparsers.add_parser(
        "harvest",
        help="Harvest records and print one JSON document per line",
    )
    _add_repository_argument(harvest_parser)
    harvest_parser.add_argument(
        "--prefix",
        dest="metadata_prefix",
        help="Metadata prefix to request (e.g. oai_dc, iso19139)",
    )
    harvest_parser.add_argument(
        "--from",
        dest="from_date",
        help="Only harvest records changed on or after this date",
    )
    harvest_parser.add_argument(
        "--until",
        dest="until_date",
        help="Only harvest records changed on or before this date",
    )
    harvest_parser.add_argument(
        "--limit",
        type=_non_negative_int,
        help="Stop after N documents",
    )
    harvest_parser.add_argument(
        "--output",
        type=Path,
        help="Write documents to this file instead of stdout",
    )

    formats_parser = subparsers.add_parser(
        "formats",
        help="List the metadata formats a repository advertises",
    )
    _add_repository_argument(formats_parser)

    identify_parser = subparsers.add_parser(
        "identify",
        help="Show the name of a repository",
    )
    _add_repository_argument(identify_parser)

    return parser


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text}")
    return value


def _add_repository_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--host-url",
        dest="host_url",
        help="OAI-PMH base URL of the repository",
    )


def _load_config(args: argparse.Namespace):
    from oaiharvest.config import config_from_dict, load_config

    config = load_config(args.config)
    overrides = {
        name: getattr(args, name)
        for name in ("host_url", "metadata_prefix", "from_date", "until_date")
        if getattr(args, name, None)
    }
    if args.log_file:
        overrides["log_file"] = str(args.log_file)
    if not overrides:
        return config

    merged = asdict(config)
    merged.update(overrides)
    return config_from_dict(merged)


def run_harvest(args: argparse.Namespace, config, out: TextIO) -> int:
    from oaiharvest.harvester import OaiPmhHarvester

    harvester = OaiPmhHarvester(config)
    if not harvester.configure():
        # raises the reason why no transformer could be bound
        dispatcher = harvester.dispatcher
        dispatcher.check_prefix(dispatcher.prefix)
        dispatcher.current_transformer()

    if args.output:
        with args.output.open("w", encoding="utf-8") as handle:
            count = _write_documents(harvester, args.limit, handle)
    else:
        count = _write_documents(harvester, args.limit, out)

    get_logger(__name__).info("Wrote %d documents", count)
    return 0


def _write_documents(harvester, limit: Optional[int], out: TextIO) -> int:
    count = 0
    for document in harvester.harvest(limit=limit):
        out.write(json.dumps(document.to_dict(), ensure_ascii=False))
        out.write("\n")
        count += 1
    return count


def run_formats(args: argparse.Namespace, config, out: TextIO) -> int:
    from oaiharvest.oai.formats import RemoteFormatResolver
    from oaiharvest.oai.queries import NO_HOST_URL_ERROR
    from oaiharvest.transformers.catalog import FORMAT_CATALOG

    if not config.host_url:
        raise ValueError(NO_HOST_URL_ERROR)

    resolver = RemoteFormatResolver(timeout=config.timeout, user_agent=config.user_agent)
    formats = resolver.resolve(config.host_url)
    if not formats:
        print(f"No metadata formats could be retrieved from {config.host_url}", file=out)
        return 1

    for prefix, schema_id in formats.items():
        status = "supported" if schema_id in FORMAT_CATALOG else "unsupported"
        print(f"{prefix}\t{schema_id}\t{status}", file=out)
    return 0


def run_identify(args: argparse.Namespace, config, out: TextIO) -> int:
    from oaiharvest.oai.repository import lookup_repository_name

    name = lookup_repository_name(
        config.host_url,
        timeout=config.identify_timeout,
        user_agent=config.user_agent,
    )
    print(name, file=out)
    return 0


COMMANDS = {
    "harvest": run_harvest,
    "formats": run_formats,
    "identify": run_identify,
}


def main(argv: Optional[list] = None, out: Optional[TextIO] = None) -> int:
    """
    Run one CLI command.

    Args:
        argv: Arguments to parse instead of ``sys.argv``
        out: Stream receiving command output, stdout by default

    Returns:
        Process exit status: 0 on success, 2 for configuration errors, 1 otherwise
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging_from_args(
        verbose=args.verbose,
        log_level=args.log_level,
        log_file=str(args.log_file) if args.log_file else None,
    )

    logger = get_logger(__name__)
    logger.debug("Parsed arguments: %s", args)

    try:
        config = _load_config(args)
        configure_logging_from_args(
            verbose=args.verbose,
            log_level=args.log_level,
            log_file=config.log_file,
            default_level=config.log_level,
        )
        return COMMANDS[args.command](args, config, out or sys.stdout)

    except (FileNotFoundError, ValueError) as exc:
        # ConfigurationError is a ValueError
        logger.error(format_exception_summary(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        print("\nInterrupted by user.", file=sys.stderr)
        return 130

    except Exception as exc:
        logger.exception("Command %s failed", args.command)
        print(f"\nError: {exc}", file=sys.stderr)
        if args.verbose:
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
