#!/usr/bin/env python3
"""
Per-item checkers for the enforcer rules.

Each checker verifies exactly one declared item and returns a CheckOutcome.
Checkers never raise for problems with the item itself: missing files,
unreadable directories and I/O errors all become Failure outcomes, with the
underlying exception detail sent to the log only.

Checkers:
- check_file_content(path, content): some line of the file contains content
- check_glob_match(glob, location): some file under location matches glob
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Optional, Union

from check_outcome import CheckOutcome, Failure, Success
from glob_pattern import GlobSyntaxError, compile_glob


logger = logging.getLogger(__name__)

NULL_FILE_DISALLOWED = "Empty file name was given and allowNulls is set to false"
NULL_GLOB_DISALLOWED = "Empty glob was given and allowNulls is set to false"
NOT_A_FILE = "Not a file"
FILE_DOES_NOT_EXIST = "File doesn't exist"
READ_ERROR = "I/O error was raised, please check the log."


def check_file_content(
    path: Optional[Union[str, Path]],
    content: str,
    allow_nulls: bool = False,
    encoding: str = "utf-8",
    log: Optional[logging.Logger] = None,
) -> CheckOutcome:
    """
    Check that some line of a file contains the given content.

    Lines are compared with plain substring containment, line endings
    excluded. The file is read lazily and reading stops at the first match.

    Args:
        path: File to check; None or "" means no file name was given
        content: Substring to look for
        allow_nulls: Treat a missing file name as success
        encoding: Text encoding; undecodable bytes are replaced
        log: Logger receiving I/O error detail

    Returns:
        Success, or Failure with a diagnostic

    Example:
        >>> check_file_content("a.txt", "wor")
        Success()
    """
    log = log or logger

    if path is None or path == "":
        if allow_nulls:
            return Success()
        return Failure(NULL_FILE_DISALLOWED)

    path = Path(path)
    try:
        is_file = path.is_file()
    except OSError as e:
        log.error("Failed to stat %s: %s", path, e)
        return Failure(READ_ERROR)
    if not is_file:
        return Failure(NOT_A_FILE)

    handle = None
    try:
        handle = open(path, "r", encoding=encoding, errors="replace")
        for line in handle:
            if content in line.rstrip("\n"):
                return Success()
        return Failure(f"Doesn't contain: \"{content}\"")
    except FileNotFoundError:
        return Failure(FILE_DOES_NOT_EXIST)
    except OSError as e:
        log.error("Failed to read %s: %s", path, e)
        return Failure(READ_ERROR)
    finally:
        if handle is not None:
            try:
                handle.close()
            except OSError as e:
                log.error("Failed to close %s: %s", path, e)


def _list_directory(directory: Union[str, Path]) -> list[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def _iter_entries(entries: list[os.DirEntry], prefix: str, log: logging.Logger) -> Iterator[str]:
    for entry in entries:
        relative = f"{prefix}{entry.name}"
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as e:
            log.warning("Skipping unreadable entry %s: %s", entry.path, e)
            continue

        if not is_dir:
            yield relative
            continue

        try:
            children = _list_directory(entry.path)
        except OSError as e:
            log.warning("Skipping unreadable directory %s: %s", entry.path, e)
            continue
        yield from _iter_entries(children, f"{relative}/", log)


def iter_relative_files(location: Union[str, Path], log: Optional[logging.Logger] = None) -> Iterator[str]:
    """
    Walk a directory tree, yielding '/'-separated file paths relative to it.

    Entries are visited in sorted name order, depth first. Symbolic links are
    reported as files and never followed. Subdirectories are listed only when
    the walk reaches them, so closing the iterator early leaves the rest of
    the tree untouched. Subdirectories that cannot be listed are skipped.

    Args:
        location: Root directory of the walk
        log: Logger receiving skipped-entry warnings

    Yields:
        Relative paths of every non-directory entry under location

    Raises:
        OSError: If location itself cannot be listed (raised on first next())
    """
    log = log or logger
    yield from _iter_entries(_list_directory(location), "", log)


def check_glob_match(
    glob: Optional[str],
    location: Union[str, Path],
    allow_nulls: bool = False,
    log: Optional[logging.Logger] = None,
) -> CheckOutcome:
    """
    Check that at least one file under location matches a glob.

    The walk stops at the first matching file.

    Args:
        glob: Glob pattern matched against paths relative to location;
            None or "" means no glob was given
        location: Root directory to search
        allow_nulls: Treat a missing glob as success
        log: Logger receiving one "Check file" line per visited file

    Returns:
        Success, or Failure naming the glob and location

    Example:
        >>> check_glob_match("**/*.log", "/var/app")
        Success()
    """
    log = log or logger

    if glob is None or glob == "":
        if allow_nulls:
            return Success()
        return Failure(NULL_GLOB_DISALLOWED)

    try:
        matches = compile_glob(glob)
    except GlobSyntaxError as e:
        return Failure(f"Invalid glob pattern: {glob} ({e.reason})")

    files = iter_relative_files(location, log)
    try:
        for relative_path in files:
            log.info("Check file: %s", relative_path)
            if matches(relative_path):
                return Success()
    except OSError as e:
        log.error("Cannot walk %s: %s", location, e)
        return Failure(f"I/O error while searching for: {glob} on location: {location}")
    finally:
        files.close()

    return Failure(f"Could not find file matches with: {glob} on location: {location}")
