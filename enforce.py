#!/usr/bin/env python3
"""Command line runner for the file enforcer rules."""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from rule_config import (
    ConfigurationError,
    FilesContentConfig,
    GlobMatchesConfig,
    RuleConfig,
    load_rules,
    validate_config,
)
from rule_evaluator import RuleFailure, build_rule


logger = logging.getLogger("enforce")

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

EXIT_OK = 0
EXIT_RULE_FAILED = 1
EXIT_CONFIG_ERROR = 2


def configure_logging(level_name: str) -> None:
    """Configure the root logger, falling back to WARNING for unknown names."""
    level = getattr(logging, str(level_name).strip().upper(), None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def describe_config(config: RuleConfig) -> Dict[str, Any]:
    """Return a YAML-friendly view of a rule configuration."""
    fields = dataclasses.asdict(config)
    for key, value in fields.items():
        if isinstance(value, Path):
            fields[key] = str(value)
        elif isinstance(value, (list, tuple)):
            fields[key] = [str(item) if isinstance(item, Path) else item for item in value]
    rule = "require-files-content" if isinstance(config, FilesContentConfig) else "require-glob-matches"
    return {"rule": rule, **fields}


def run_rules(configs: Sequence[RuleConfig]) -> int:
    """
    Run every rule and report failures.

    All configurations are validated before any rule runs. Every rule runs
    even when an earlier one fails; rules at "warn" level only log.

    Args:
        configs: Rule configurations in declaration order

    Returns:
        Exit code: 0 on success, 1 if a rule failed, 2 on configuration errors
    """
    try:
        for config in configs:
            validate_config(config)
    except ConfigurationError as e:
        print(f"[ERROR] Invalid rule configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    failed = 0
    for config in configs:
        rule = build_rule(config)
        try:
            rule.execute()
        except RuleFailure as e:
            if config.level == "warn":
                logger.warning("Rule %s failed:\n%s", rule.name, e.message)
                continue
            failed += 1
            print(f"[ERROR] Rule {rule.name} failed:\n{e.message}", file=sys.stderr)

    if failed:
        return EXIT_RULE_FAILED

    print(f"Enforcer rules passed: {len(configs)} rule(s)")
    return EXIT_OK


def require_files_content(args) -> int:
    """Run the require-files-content rule from command line arguments."""
    config = FilesContentConfig(
        files=args.files,
        content=args.content,
        allow_nulls=args.allow_nulls,
        message=args.message,
        encoding=args.encoding,
    )
    return run_rules([config])


def require_glob_matches(args) -> int:
    """Run the require-glob-matches rule from command line arguments."""
    config = GlobMatchesConfig(
        globs=args.globs,
        location=args.location,
        allow_nulls=args.allow_nulls,
        message=args.message,
    )
    return run_rules([config])


def run(args) -> int:
    """Run every rule declared in a YAML rules file."""
    try:
        configs = load_rules(args.rules_file)
    except ConfigurationError as e:
        print(f"[ERROR] Failed to load rules: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.show_effective_rules:
        print("=== Effective Enforcer Rules ===")
        print(f"Rules file: {args.rules_file}")
        print(yaml.dump([describe_config(c) for c in configs], default_flow_style=False, sort_keys=False))
        print("=" * 60)
        return EXIT_OK

    return run_rules(configs)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="enforce",
        description="Check that files contain required content and that globs match files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s require-files-content --content License --file README.md --file NOTICE
  %(prog)s require-glob-matches --location build --glob '**/*.jar'
  %(prog)s run enforcer-rules.yaml
        """
    )
    parser.add_argument(
        '--log-level',
        default='WARNING',
        help='Logging level (DEBUG, INFO, WARNING, ERROR); INFO lists every checked file'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        help='Rule to run'
    )

    # require-files-content subcommand
    parser_content = subparsers.add_parser(
        'require-files-content',
        help='Require every file to contain a line with the given content'
    )
    parser_content.add_argument('--content', help='Text that must appear on a line')
    parser_content.add_argument(
        '--file',
        dest='files',
        action='append',
        help='File to check (repeatable); an empty value counts as a null entry'
    )
    parser_content.add_argument(
        '--allow-nulls',
        action='store_true',
        help='Treat empty file entries as passing'
    )
    parser_content.add_argument('--encoding', default='utf-8', help='File encoding')
    parser_content.add_argument('--message', help='Replace the default failure explanation')

    # require-glob-matches subcommand
    parser_glob = subparsers.add_parser(
        'require-glob-matches',
        help='Require every glob to match a file under a location'
    )
    parser_glob.add_argument('--location', help='Directory the globs are relative to')
    parser_glob.add_argument(
        '--glob',
        dest='globs',
        action='append',
        help='Glob pattern (repeatable); an empty value counts as a null entry'
    )
    parser_glob.add_argument(
        '--allow-nulls',
        action='store_true',
        help='Treat empty glob entries as passing'
    )
    parser_glob.add_argument('--message', help='Replace the default failure explanation')

    # run subcommand
    parser_run = subparsers.add_parser(
        'run',
        help='Run the rules declared in a YAML rules file'
    )
    parser_run.add_argument('rules_file', type=Path, help='YAML rules file')
    parser_run.add_argument(
        '--show-effective-rules',
        action='store_true',
        help='Show resolved rules and exit (debug mode)'
    )

    return parser


def main(argv: List[str] = None) -> int:
    """Main entry point for the enforcer."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    handlers = {
        'require-files-content': require_files_content,
        'require-glob-matches': require_glob_matches,
        'run': run,
    }

    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
