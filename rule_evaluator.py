#!/usr/bin/env python3
"""
Rule Evaluator - runs enforcer rules and aggregates their failures.

Each rule validates its configuration, checks every declared item in
declaration order and collects one line per failing item. A failure on one
item never stops the remaining items from being checked. Failures are only
surfaced to the caller as a single RuleFailure carrying every line.

Rules:
- RequireFilesContent: every file contains a line with the given content
- RequireGlobMatches: every glob matches some file under a location
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from check_outcome import Failure
from checkers import check_file_content, check_glob_match
from rule_config import FilesContentConfig, GlobMatchesConfig, RuleConfig, validate_config


logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = (
    "Some files produce errors, please check the error message "
    "for the individual file above."
)

# Identifier used in report lines for absent file entries
NULL_FILE_IDENTIFIER = "<null>"


class RuleFailure(Exception):
    """
    Aggregated failure of one rule.

    Attributes:
        lines: Individual failure lines in declaration order
        message: Full failure text (every line, then the explanation)
    """

    def __init__(self, lines: Sequence[str], message: str):
        super().__init__(message)
        self.lines = list(lines)
        self.message = message


def format_failure(lines: Sequence[str], custom_message: Optional[str] = None) -> str:
    """
    Join failure lines into one message.

    Args:
        lines: Failure lines, each written on its own line
        custom_message: Text used instead of DEFAULT_FAILURE_MESSAGE

    Returns:
        Every line followed by a newline, then the explanation
    """
    explanation = custom_message if custom_message is not None else DEFAULT_FAILURE_MESSAGE
    return "".join(f"{line}\n" for line in lines) + explanation


def report(lines: Sequence[str], custom_message: Optional[str] = None) -> None:
    """
    Turn an aggregate report into the rule outcome.

    Args:
        lines: Failure lines collected by a rule
        custom_message: Optional text replacing the default explanation

    Raises:
        RuleFailure: If lines is not empty
    """
    if not lines:
        return
    raise RuleFailure(lines, format_failure(lines, custom_message))


class Rule:
    """
    Base class for enforcer rules.

    Subclasses implement _collect_failures() and set name.
    """

    name = ""

    def __init__(self, config: RuleConfig, log: Optional[logging.Logger] = None):
        """
        Initialize rule with its configuration.

        Args:
            config: Rule configuration, validated when the rule is evaluated
            log: Logger sink for diagnostics (defaults to this module's logger)
        """
        self.config = config
        self.log = log or logger

    @property
    def cache_id(self) -> Optional[str]:
        """Key a host may use to reuse earlier results; None disables reuse."""
        return None

    def evaluate(self) -> List[str]:
        """
        Validate the configuration and check every declared item.

        Returns:
            Failure lines in declaration order (empty if every item passed)

        Raises:
            ConfigurationError: If the configuration is malformed
        """
        validate_config(self.config)
        self.log.info("Running rule %s", self.name)
        return self._collect_failures()

    def execute(self) -> None:
        """
        Evaluate the rule and report the outcome.

        Raises:
            ConfigurationError: If the configuration is malformed
            RuleFailure: If at least one item failed
        """
        report(self.evaluate(), self.config.message)

    def _collect_failures(self) -> List[str]:
        raise NotImplementedError


class RequireFilesContent(Rule):
    """Every listed file must have a line containing the configured content."""

    name = "require-files-content"

    def __init__(self, config: FilesContentConfig, log: Optional[logging.Logger] = None):
        super().__init__(config, log)

    def _collect_failures(self) -> List[str]:
        failures = []

        for path in self.config.files:
            outcome = check_file_content(
                path,
                self.config.content,
                allow_nulls=self.config.allow_nulls,
                encoding=self.config.encoding,
                log=self.log,
            )
            if isinstance(outcome, Failure):
                failures.append(f"{self._identify(path)} : {outcome.diagnostic}")

        return failures

    @staticmethod
    def _identify(path) -> str:
        if path is None or path == "":
            return NULL_FILE_IDENTIFIER
        return str(Path(path).absolute())


class RequireGlobMatches(Rule):
    """Every listed glob must match at least one file under the location."""

    name = "require-glob-matches"

    def __init__(self, config: GlobMatchesConfig, log: Optional[logging.Logger] = None):
        super().__init__(config, log)

    @property
    def cache_id(self) -> Optional[str]:
        # Does not vary with globs, location or tree contents
        return "0"

    def _collect_failures(self) -> List[str]:
        failures = []

        for glob in self.config.globs:
            outcome = check_glob_match(
                glob,
                self.config.location,
                allow_nulls=self.config.allow_nulls,
                log=self.log,
            )
            if isinstance(outcome, Failure):
                failures.append(outcome.diagnostic)

        return failures


RULES = {
    FilesContentConfig: RequireFilesContent,
    GlobMatchesConfig: RequireGlobMatches,
}


def build_rule(config: RuleConfig, log: Optional[logging.Logger] = None) -> Rule:
    """
    Create the rule matching a configuration.

    Args:
        config: FilesContentConfig or GlobMatchesConfig
        log: Optional logger sink

    Returns:
        RequireFilesContent or RequireGlobMatches
    """
    try:
        rule_class = RULES[type(config)]
    except KeyError:
        raise TypeError(f"No rule for configuration type {type(config).__name__}")
    return rule_class(config, log)
