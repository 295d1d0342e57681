#!/usr/bin/env python3
"""
Glob pattern compiler for relative path matching.

Translates a glob into a regular expression that is matched against a
'/'-separated path relative to some root directory.

Supported syntax:
- *      any run of characters within one path component
- **     any run of characters, crossing component boundaries
- ?      exactly one character other than '/'
- [abc]  character class, with ranges [a-z] and negation [!a]
- {a,b}  alternatives (groups cannot be nested)
- \\x     literal x

Unlike shell globbing, '**/' requires at least one directory: '**/*.log'
matches 'sub/app.log' but not 'app.log'.
"""

import re
from typing import Callable


class GlobSyntaxError(ValueError):
    """Exception raised when a glob pattern cannot be compiled."""

    def __init__(self, reason: str, pattern: str, index: int):
        super().__init__(f"{reason} at index {index} in glob: {pattern}")
        self.reason = reason
        self.pattern = pattern
        self.index = index


def _translate_class(pattern: str, i: int) -> tuple[str, int]:
    """Translate a [...] class starting after the '[' at pattern[i - 1]."""
    parts = []
    negate = False

    if i < len(pattern) and pattern[i] == '!':
        negate = True
        i += 1

    has_range_start = False
    last = ''
    closed = False

    while i < len(pattern):
        c = pattern[i]
        i += 1
        if c == ']':
            closed = True
            break
        if c == '/':
            raise GlobSyntaxError("Explicit 'name separator' in class", pattern, i - 1)
        if c == '-' and has_range_start and i < len(pattern) and pattern[i] != ']':
            upper = pattern[i]
            if upper == '/':
                raise GlobSyntaxError("Explicit 'name separator' in class", pattern, i)
            if upper < last:
                raise GlobSyntaxError("Invalid range", pattern, i - 2)
            parts.append('-' + re.escape(upper))
            i += 1
            has_range_start = False
            continue
        parts.append(re.escape(c))
        last = c
        has_range_start = True

    if not closed:
        raise GlobSyntaxError("Missing ']'", pattern, i - 1)

    body = ''.join(parts)
    if not body:
        # '[]' and '[!]' never match anything useful
        raise GlobSyntaxError("Empty character class", pattern, i - 1)

    # Ranges such as [!-0] span '/', which must never match
    if negate:
        return f"[^/{body}]", i
    return f"(?!/)[{body}]", i


def glob_to_regex(pattern: str) -> str:
    """
    Translate a glob pattern into an anchored regular expression.

    Args:
        pattern: Glob pattern

    Returns:
        Regular expression source matching the whole relative path

    Raises:
        GlobSyntaxError: If the pattern is malformed

    Example:
        >>> glob_to_regex("**/*.log")
        '^.*/[^/]*\\\\.log$'
    """
    out = ['^']
    in_group = False
    i = 0

    while i < len(pattern):
        c = pattern[i]
        i += 1

        if c == '\\':
            if i == len(pattern):
                raise GlobSyntaxError("No character to escape", pattern, i - 1)
            out.append(re.escape(pattern[i]))
            i += 1
        elif c == '[':
            translated, i = _translate_class(pattern, i)
            out.append(translated)
        elif c == '{':
            if in_group:
                raise GlobSyntaxError("Cannot nest groups", pattern, i - 1)
            out.append('(?:(?:')
            in_group = True
        elif c == '}':
            if in_group:
                out.append('))')
                in_group = False
            else:
                out.append(re.escape(c))
        elif c == ',':
            out.append(')|(?:' if in_group else ',')
        elif c == '*':
            if i < len(pattern) and pattern[i] == '*':
                out.append('.*')
                i += 1
            else:
                out.append('[^/]*')
        elif c == '?':
            out.append('[^/]')
        else:
            out.append(re.escape(c))

    if in_group:
        raise GlobSyntaxError("Missing '}'", pattern, i - 1)

    out.append('$')
    return ''.join(out)


def compile_glob(pattern: str) -> Callable[[str], bool]:
    """
    Compile a glob pattern into a relative path predicate.

    Args:
        pattern: Glob pattern

    Returns:
        Function taking a '/'-separated relative path and returning True if
        the whole path matches

    Raises:
        GlobSyntaxError: If the pattern is malformed

    Example:
        >>> matches = compile_glob("src/**/*.{py,pyi}")
        >>> matches("src/pkg/mod.py")
        True
        >>> matches("src/mod.txt")
        False
    """
    regex = re.compile(glob_to_regex(pattern), re.DOTALL)

    def matches(relative_path: str) -> bool:
        return regex.match(relative_path) is not None

    return matches
