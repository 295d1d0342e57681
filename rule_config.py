#!/usr/bin/env python3
"""
Rule configuration and input validation.

This module holds the declarative configuration for the two enforcer rules
and validates it before any filesystem access happens:

- FilesContentConfig: files that must contain a line with some content
- GlobMatchesConfig: globs that must match at least one file under a location

Rules can also be declared in a YAML rules file. The file is validated
against RULES_SCHEMA with jsonschema before configs are built from it.
"""

import codecs
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import jsonschema
import yaml


LEVELS = ("error", "warn")


class ConfigurationError(Exception):
    """Base exception for rule configuration problems."""
    pass


class MissingConfigurationError(ConfigurationError):
    """Exception raised when a required configuration field is absent."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Exception raised when a configuration field has an unusable value."""
    pass


@dataclass(frozen=True)
class FilesContentConfig:
    """
    Configuration for the require-files-content rule.

    Attributes:
        files: Files to check; entries may be None
        content: Substring that must appear on some line of every file
        allow_nulls: Treat None entries as passing instead of failing
        message: Optional text replacing the default failure explanation
        encoding: Text encoding used to read the files
        level: "error" fails the run, "warn" only logs the failure
    """
    files: Optional[Sequence[Optional[Union[str, Path]]]]
    content: Optional[str]
    allow_nulls: bool = False
    message: Optional[str] = None
    encoding: str = "utf-8"
    level: str = "error"


@dataclass(frozen=True)
class GlobMatchesConfig:
    """
    Configuration for the require-glob-matches rule.

    Attributes:
        globs: Glob patterns, each of which must match a file under location
        location: Root directory the globs are relative to
        allow_nulls: Treat None or empty glob entries as passing instead of failing
        message: Optional text replacing the default failure explanation
        level: "error" fails the run, "warn" only logs the failure
    """
    globs: Optional[Sequence[Optional[str]]]
    location: Optional[Union[str, Path]]
    allow_nulls: bool = False
    message: Optional[str] = None
    level: str = "error"


RuleConfig = Union[FilesContentConfig, GlobMatchesConfig]


def _require(value: Any, error_message: str) -> None:
    if value is None:
        raise MissingConfigurationError(error_message)


def _check_argument(condition: bool, error_message: str) -> None:
    if not condition:
        raise InvalidConfigurationError(error_message)


def validate_config(config: RuleConfig) -> None:
    """
    Reject a malformed rule configuration.

    Args:
        config: Configuration to validate

    Raises:
        MissingConfigurationError: If a required field is None
        InvalidConfigurationError: If a collection is empty, or the level or
            encoding is unknown
    """
    if isinstance(config, FilesContentConfig):
        _require(config.files, "files is mandatory")
        _require(config.content, "content is mandatory")
        _check_argument(len(config.files) > 0, "at least 1 file must be specified")
        try:
            codecs.lookup(config.encoding)
        except LookupError:
            raise InvalidConfigurationError(f"Unknown encoding: {config.encoding}")
    elif isinstance(config, GlobMatchesConfig):
        _require(config.globs, "globs is mandatory")
        _require(config.location, "location is mandatory")
        _check_argument(len(config.globs) > 0, "at least 1 glob must be specified")
    else:
        raise InvalidConfigurationError(
            f"Unsupported rule configuration: {type(config).__name__}"
        )

    _check_argument(
        config.level in LEVELS,
        f"level must be one of: {', '.join(LEVELS)} (got {config.level!r})"
    )


# JSON Schema (Draft 7) for YAML rules files. Required rule fields are not
# listed here so that validate_config reports them with its own messages.
RULES_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["schema_version", "rules"],
    "additionalProperties": False,
    "properties": {
        "schema_version": {"type": "integer", "const": 1},
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["rule"],
                "properties": {
                    "rule": {"enum": ["require-files-content", "require-glob-matches"]},
                    "files": {
                        "type": "array",
                        "items": {"type": ["string", "null"]}
                    },
                    "content": {"type": "string"},
                    "globs": {
                        "type": "array",
                        "items": {"type": ["string", "null"]}
                    },
                    "location": {"type": "string"},
                    "allowNulls": {"type": "boolean"},
                    "message": {"type": "string"},
                    "encoding": {"type": "string"},
                    "level": {"enum": list(LEVELS)},
                },
                "allOf": [
                    {
                        "if": {"properties": {"rule": {"const": "require-files-content"}}},
                        "then": {"not": {"anyOf": [
                            {"required": ["globs"]},
                            {"required": ["location"]}
                        ]}}
                    },
                    {
                        "if": {"properties": {"rule": {"const": "require-glob-matches"}}},
                        "then": {"not": {"anyOf": [
                            {"required": ["files"]},
                            {"required": ["content"]},
                            {"required": ["encoding"]}
                        ]}}
                    }
                ],
                "additionalProperties": False
            }
        }
    }
}


def _resolve(base_dir: Path, entry: Optional[str]) -> Optional[Union[str, Path]]:
    # Empty strings stay as-is so they are treated as absent file names
    if entry is None or entry == "":
        return entry
    path = Path(entry)
    return path if path.is_absolute() else base_dir / path


def build_config(rule: Dict[str, Any], base_dir: Optional[Path] = None) -> RuleConfig:
    """
    Build a rule configuration from one entry of a rules file.

    Args:
        rule: Rule dictionary (already validated against RULES_SCHEMA)
        base_dir: Directory relative paths are resolved against

    Returns:
        FilesContentConfig or GlobMatchesConfig
    """
    base_dir = base_dir or Path.cwd()
    common = {
        "allow_nulls": rule.get("allowNulls", False),
        "message": rule.get("message"),
        "level": rule.get("level", "error"),
    }

    if rule["rule"] == "require-files-content":
        files = rule.get("files")
        if files is not None:
            files = [_resolve(base_dir, entry) for entry in files]
        return FilesContentConfig(
            files=files,
            content=rule.get("content"),
            encoding=rule.get("encoding", "utf-8"),
            **common
        )

    return GlobMatchesConfig(
        globs=rule.get("globs"),
        location=_resolve(base_dir, rule.get("location")),
        **common
    )


def load_rules(rules_path: Union[str, Path]) -> List[RuleConfig]:
    """
    Load rule configurations from a YAML rules file.

    Args:
        rules_path: Path to the rules file

    Returns:
        List of rule configurations in declaration order

    Raises:
        InvalidConfigurationError: If the file cannot be read, is not valid
            YAML, or does not conform to RULES_SCHEMA

    Example:
        >>> configs = load_rules("enforcer-rules.yaml")
        >>> [type(c).__name__ for c in configs]
        ['FilesContentConfig', 'GlobMatchesConfig']
    """
    rules_path = Path(rules_path)

    try:
        document = yaml.safe_load(rules_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise InvalidConfigurationError(f"Cannot read rules file {rules_path}: {e}")
    except yaml.YAMLError as e:
        raise InvalidConfigurationError(f"Invalid YAML in {rules_path}: {e}")

    try:
        jsonschema.validate(instance=document, schema=RULES_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise InvalidConfigurationError(
            f"Invalid rules file {rules_path} at {location}: {e.message}"
        )

    base_dir = rules_path.resolve().parent
    return [build_config(rule, base_dir) for rule in document["rules"]]
