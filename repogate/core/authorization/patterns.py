"""Glob matching of repository-relative paths against protection patterns.

``*`` and ``?`` never cross ``/``, ``**`` matches across directories (``**/``
also matches none), ``[...]`` classes and ``{a,b}`` alternation are supported.
Matching is case-sensitive on every platform.
"""

import re
from typing import Iterable, List, Sequence

from wcmatch import glob

GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.DOTGLOB | glob.CASE | glob.FORCEUNIX


def validate_pattern(pattern: str) -> str:
    """Compile a glob once, raising ``ValueError`` if it cannot be matched"""
    try:
        include, exclude = glob.translate(pattern, flags=GLOB_FLAGS)
        for expression in list(include) + list(exclude):
            re.compile(expression)
    except re.error as e:
        raise ValueError(f"Invalid file pattern {pattern!r}: {e}") from e
    return pattern


def match_path(pattern: str, path: str) -> bool:
    """Case-sensitive match of a single path"""
    return glob.globmatch(path.lstrip("/"), pattern, flags=GLOB_FLAGS)


def matches_any(patterns: Iterable[str], path: str) -> bool:
    return any(match_path(p, path) for p in patterns)


def find_protected_files(
    paths: Iterable[str],
    protected_patterns: Sequence[str],
    unprotected_patterns: Sequence[str] = (),
) -> List[str]:
    """Paths covered by a protected pattern and by no unprotected pattern"""
    if not protected_patterns:
        return []
    return [
        path for path in paths
        if matches_any(protected_patterns, path)
        and not matches_any(unprotected_patterns, path)
    ]
