"""Locates pom.xml descriptors in workspace roots."""

import fnmatch
import locale
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Collection, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

DESCRIPTOR_FILENAME = "pom.xml"
DEFAULT_EXCLUDE_PATTERNS = ("target", "node_modules", ".git", ".idea")

Finder = Callable[[str, Collection[str]], Iterable[str]]


def descriptor_sort_key(path: str):
    """Case-insensitive collation key, ties broken by the exact path."""
    return locale.strxfrm(path.casefold()), path


def find_files(root: str, exclude_patterns: Collection[str] = DEFAULT_EXCLUDE_PATTERNS,
               filename: str = DESCRIPTOR_FILENAME) -> List[str]:
    """
    Recursively search a root directory for files with an exact name.

    Args:
        root: Directory to search
        exclude_patterns: Glob patterns matched against directory names and
            root-relative directory paths; matching directories are pruned
        filename: Exact file name to match

    Returns:
        Absolute paths of matching files
    """
    root = os.path.abspath(root)
    found = []

    for dirpath, dirnames, filenames in os.walk(root):
        kept = []
        for dirname in dirnames:
            rel_path = os.path.relpath(os.path.join(dirpath, dirname), root).replace(os.sep, '/')
            if any(fnmatch.fnmatch(dirname, pat) or fnmatch.fnmatch(rel_path, pat) for pat in exclude_patterns):
                continue
            kept.append(dirname)
        # Prune in place so os.walk does not descend into excluded directories
        dirnames[:] = kept

        if filename in filenames:
            found.append(os.path.join(dirpath, filename))

    return found


def locate_descriptors(roots: Iterable[str], exclude_patterns: Optional[Collection[str]] = None,
                       finder: Optional[Finder] = None) -> List[str]:
    """
    Find pom.xml files in all workspace roots.

    Each root is searched in its own worker. Paths reachable from several
    overlapping roots are reported once, and the result is sorted so every
    run on every OS yields the same order.

    Args:
        roots: Workspace root directories
        exclude_patterns: Directory glob patterns to skip
        finder: Callable(root, exclude_patterns) returning descriptor paths

    Returns:
        Sorted list of descriptor paths (empty if none were found)
    """
    if exclude_patterns is None:
        exclude_patterns = DEFAULT_EXCLUDE_PATTERNS
    if finder is None:
        finder = find_files

    roots = list(dict.fromkeys(roots))
    if not roots:
        return []

    descriptors: Set[str] = set()
    with ThreadPoolExecutor(max_workers=len(roots)) as executor:
        for root in roots:
            logger.info(f"Locating {DESCRIPTOR_FILENAME} files in workspace {root}")
        results = executor.map(lambda root: list(finder(root, exclude_patterns)), roots)
        for paths in results:
            descriptors.update(os.path.normpath(path) for path in paths)

    return sorted(descriptors, key=descriptor_sort_key)
