import argparse
import sys
from typing import List, Optional

from .collaborators import JsonOccurrenceScanner
from .config.settings import SettingsManager
from .errors import PoolError
from .logger import configure_logging, get_logger, setup_exception_hook
from .reporting import Reporter
from .services.pool_service import PoolService

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stringpool", description="Translation pool tool")
    parser.add_argument("--config", help="Path to settings file (default: stringpool.json)")
    parser.add_argument("--log-level", help="Console log level (DEBUG, INFO, WARNING, ERROR)")

    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Build or update the pool from scanned occurrences")
    extract.add_argument("--occurrences", required=True, help="JSON file produced by a scanner")
    extract.add_argument("--output", help="Pool file to write")
    extract.add_argument("--project", help="Project name for a new pool")
    extract.add_argument("--source-lang", help="Source language code")
    extract.add_argument("--target-lang", help="Target language code")
    extract.add_argument("--update", action="store_true", help="Merge into the existing pool")
    extract.add_argument("--keep-deleted", action="store_true",
                         help="Keep units no longer in source (marked as ignored)")

    validate = sub.add_parser("validate", help="Validate a pool file")
    validate.add_argument("--mapping", help="Pool file")
    validate.add_argument("--strict", action="store_true", help="Fail on untranslated units")

    stats = sub.add_parser("stats", help="Print pool statistics")
    stats.add_argument("--mapping", help="Pool file")

    directives = sub.add_parser("directives", help="Write patch directives as JSON")
    directives.add_argument("--mapping", help="Pool file")
    directives.add_argument("--output", help="Directive file (default: print to stdout)")

    export = sub.add_parser("export-xliff", help="Export the pool as XLIFF 1.2")
    export.add_argument("--mapping", help="Pool file")
    export.add_argument("--output", required=True, help="XLIFF file to write")

    imp = sub.add_parser("import-xliff", help="Apply translations from an XLIFF file")
    imp.add_argument("--mapping", help="Pool file")
    imp.add_argument("--xliff", required=True, help="XLIFF file to read")

    return parser


def run(args: argparse.Namespace, service: PoolService) -> int:
    if args.command == "extract":
        service.settings.override(
            source_language=args.source_lang,
            target_language=args.target_lang,
            keep_deleted=True if args.keep_deleted else None,
        )
        result = service.extract(
            JsonOccurrenceScanner(args.occurrences),
            mapping_file=args.output,
            project_name=args.project,
            update=args.update,
        )
        if result.was_update:
            s = result.merge_stats
            print(f"Updated: {s.unchanged} unchanged, {s.updated} updated, "
                  f"{s.added} added, {s.deleted} deleted")
        else:
            print(f"Created pool with {len(result.pool.units)} translations")
        return 0

    if args.command == "validate":
        report = service.validate(args.mapping, strict=True if args.strict else None)
        print(f"{len(report.errors)} errors, {len(report.warnings)} warnings")
        return 0 if report.is_valid else 1

    if args.command == "stats":
        print(service.statistics(args.mapping))
        return 0

    if args.command == "directives":
        directives = service.directives(args.mapping, args.output)
        if not args.output:
            for d in directives:
                print(f"{d.file_path}:{d.line}\t{d.key}\t{d.target_text}")
        return 0

    if args.command == "export-xliff":
        service.export_xliff(args.output, args.mapping)
        return 0

    if args.command == "import-xliff":
        report = service.import_xliff(args.xliff, args.mapping)
        print(f"Applied {report.applied}, reviewed {report.reviewed}, "
              f"skipped {report.skipped}, unknown {report.unknown}")
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = SettingsManager(args.config)
    settings.override(log_level=args.log_level)
    configure_logging(settings.log_level, settings.log_file)
    setup_exception_hook()

    service = PoolService(settings, Reporter(get_logger("pool")))
    try:
        return run(args, service)
    except PoolError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
