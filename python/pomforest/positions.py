"""Locates dependency declarations inside pom.xml text."""

import logging
import re
from typing import List, Optional

from .models import DependencyNode, Position, PositionSpan

logger = logging.getLogger(__name__)

DEPENDENCIES_TAG = '<dependencies>'
DEPENDENCY_BLOCK = re.compile(r'<dependency>.*?</dependency>', re.IGNORECASE | re.DOTALL)


def position_at(text: str, offset: int) -> Position:
    """Convert a character offset into a (line, character) position."""
    line = text.count('\n', 0, offset)
    line_start = text.rfind('\n', 0, offset) + 1
    return Position(line=line, character=offset - line_start)


def find_dependencies_section_position(text: str) -> Optional[PositionSpan]:
    """
    Get the position of the '<dependencies>' tag.

    Returns:
        Span of the tag, or None if the document has no dependencies section
    """
    index = text.find(DEPENDENCIES_TAG)
    if index < 0:
        return None
    start = position_at(text, index)
    return PositionSpan(start, Position(start.line, start.character + len(DEPENDENCIES_TAG)))


def _match_declaration(text: str, group_id: str, artifact_id: str, version: str) -> Optional[List[PositionSpan]]:
    """Spans of the matching lines in the first matching block, None if no block matches."""
    for block in DEPENDENCY_BLOCK.finditer(text):
        block_text = block.group(0).lower()
        if group_id in block_text and artifact_id in block_text:
            break
    else:
        return None

    wanted = {
        f'<groupid>{group_id}</groupid>',
        f'<artifactid>{artifact_id}</artifactid>',
        f'<version>{version}</version>',
    }
    lines = text.split('\n')
    first_line = position_at(text, block.start()).line
    last_line = position_at(text, block.end()).line

    spans = []
    for line_number in range(first_line, min(last_line + 1, len(lines))):
        line = lines[line_number].rstrip('\r')
        if not line.strip():
            continue
        if line.strip().lower() in wanted:
            spans.append(PositionSpan(
                Position(line_number, line.index('<')),
                Position(line_number, len(line)),
            ))
    return spans


def find_dependency_position(text: str, node: Optional[DependencyNode]) -> List[PositionSpan]:
    """
    Get the position of a dependency declaration in a pom.xml.

    The first <dependency> block mentioning the node's groupId and artifactId
    is used, and its groupId, artifactId and version lines are highlighted. A
    transitive dependency is not declared in the pom.xml, so when nothing
    matches the search continues with the dependency that pulled it in, up to
    the enclosing module.

    Args:
        text: pom.xml content
        node: Dependency tree node to locate

    Returns:
        Spans from the '<' of each matching line to the end of the line
    """
    current = node
    while current is not None:
        identity = current.identity
        spans = _match_declaration(
            text,
            identity.group_id.lower(),
            identity.artifact_id.lower(),
            identity.version.lower(),
        )
        if spans is not None:
            return spans
        if current.is_module:
            break
        current = current.parent

    logger.debug(f"No declaration found for {node.identity if node else None}")
    return []
