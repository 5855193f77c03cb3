"""Parsers for Maven identity strings and dependency:tree reports."""

import logging
import re
from typing import Dict, List, Tuple

from .models import DependencyNode, ModuleIdentity

logger = logging.getLogger(__name__)

DUMMY_SCOPE = 'dummyScope'

_WORD_CHAR = re.compile(r'\w')
_WHITESPACE = re.compile(r'\s')
# Maven log prefixes when the report is read from stdout instead of -DoutputFile
_LOG_LEVEL_PREFIX = re.compile(r'^\[(INFO|DEBUG)\] ?', re.IGNORECASE)
_OPTIONAL_MARKER = re.compile(r'\s*\(optional\)\s*$', re.IGNORECASE)
# Trailing annotations added by -Dverbose, e.g. " (version managed from 1.0)"
_VERBOSE_NOTE = re.compile(r'\s+\(.*\)\s*$')
_MODULE_HEADER = re.compile(r'^[^\s:]+(:[^\s:]+){3,}$')


def strip_tree_glyphs(raw_dependency: str) -> str:
    """Remove the leading non-alphanumeric tree drawing characters."""
    match = _WORD_CHAR.search(raw_dependency)
    if not match:
        return ''
    return raw_dependency[match.start():]


def parse_identity(raw_dependency: str) -> Tuple[str, str, str]:
    """
    Parse a raw dependency line into (groupId, artifactId, version).

    Args:
        raw_dependency: e.g. "|  |  +- javax.mail:mail:jar:1.4:compile"

    Returns:
        Tuple of groupId, artifactId and version. The version is the field
        preceding the trailing scope.
    """
    fields = raw_dependency.split(':')
    return strip_tree_glyphs(fields[0]), fields[1], fields[-2]


def parse_project_identity(raw_project: str) -> Tuple[str, str, str]:
    """Parse a scope-less GAV such as a module header line."""
    return parse_identity(_WHITESPACE.sub('', raw_project) + ':' + DUMMY_SCOPE)


def parse_scope(raw_dependency: str) -> str:
    """Return the scope field of a raw dependency line."""
    line = _OPTIONAL_MARKER.sub('', raw_dependency.rstrip())
    line = _VERBOSE_NOTE.sub('', line)
    return line.split(':')[-1].strip()


def parse_packaging(raw_dependency: str) -> str:
    fields = strip_tree_glyphs(raw_dependency).split(':')
    return fields[2] if len(fields) >= 5 else ''


def dependency_depth(raw_dependency: str) -> int:
    """Depth of a tree line, every level is drawn with three characters."""
    match = _WORD_CHAR.search(raw_dependency)
    if not match:
        return 0
    return max(match.start() // 3 - 1, 0)


def _clean_report_line(line: str) -> str:
    line = _LOG_LEVEL_PREFIX.sub('', line.rstrip('\r\n'))
    return line.rstrip()


def _is_report_noise(line: str) -> bool:
    if not line.strip():
        return True
    if line.startswith('['):
        # [WARNING], [ERROR] and friends
        return True
    if '---' in line or line.startswith('BUILD ') or line.startswith('Building '):
        return True
    return False


def parse_dependency_tree(report: str) -> Dict[ModuleIdentity, List[str]]:
    """
    Split a 'mvn dependency:tree' report into per-module sections.

    A line starting with a word character is a module header
    (groupId:artifactId:packaging:version). The glyph-prefixed lines that
    follow it are that module's raw dependency lines. When a module appears
    twice in an appended report, the later section wins.

    Returns:
        Ordered mapping of module identity to its raw dependency lines
    """
    sections: Dict[ModuleIdentity, List[str]] = {}
    current = None

    for line in report.splitlines():
        line = _clean_report_line(line)
        if _is_report_noise(line):
            continue

        if _WORD_CHAR.match(line):
            if not _MODULE_HEADER.match(line):
                logger.debug(f"Skipping non-module line in dependency tree: '{line}'")
                current = None
                continue
            group_id, artifact_id, version = parse_project_identity(line)
            current = ModuleIdentity(group_id, artifact_id, version)
            sections[current] = []
            continue

        if current is None:
            logger.debug(f"Skipping dependency line outside of a module section: '{line}'")
            continue
        if strip_tree_glyphs(line).count(':') < 3:
            continue
        sections[current].append(line)

    logger.debug(f"Parsed {len(sections)} module sections from dependency tree report")
    return sections


def build_dependency_nodes(raw_dependencies: List[str], module: DependencyNode) -> List[DependencyNode]:
    """
    Attach raw dependency lines to a module node, following indentation.

    Lines whose parent line was filtered out are attached to the nearest
    remaining ancestor.

    Returns:
        The nodes created for the module's direct dependencies
    """
    direct = []
    stack: List[DependencyNode] = []

    for raw in raw_dependencies:
        group_id, artifact_id, version = parse_identity(_OPTIONAL_MARKER.sub('', raw))
        node = DependencyNode(
            identity=ModuleIdentity(group_id, artifact_id, version),
            scope=parse_scope(raw),
            packaging=parse_packaging(raw),
        )
        depth = dependency_depth(raw)
        del stack[depth:]
        if stack:
            stack[-1].add_child(node)
        else:
            module.add_child(node)
            direct.append(node)
        stack.append(node)

    return direct
