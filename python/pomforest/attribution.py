"""Separates a module's own dependencies from the ones inherited from its parent."""

import logging
import re
from typing import List, Optional, Sequence

from .parsers import strip_tree_glyphs

logger = logging.getLogger(__name__)


def filter_inherited(child_dependencies: Sequence[str],
                     parent_dependencies: Optional[Sequence[str]]) -> Optional[List[str]]:
    """
    Filter out the parent's dependencies from a child's dependency list.

    'mvn dependency:tree' repeats every dependency a module inherits from its
    parent inside the module's own section. A child line is dropped when its
    text (without the tree glyphs) appears in any of the parent's lines.
    This is a best-effort match: a child that redeclares a parent dependency
    with identical coordinates is treated as inheriting it.

    Args:
        child_dependencies: Raw dependency:tree lines of the child module
        parent_dependencies: Raw lines of the parent module, None for a root module

    Returns:
        The child's own dependency lines, or None if there is no parent
    """
    if parent_dependencies is None:
        return None

    raw_parent = '\n'.join(parent_dependencies)
    own = []
    for child_dependency in child_dependencies:
        suffix = strip_tree_glyphs(child_dependency)
        pattern = re.compile(f'^.*{re.escape(suffix)}.*$', re.MULTILINE)
        if pattern.search(raw_parent):
            continue
        own.append(child_dependency)

    logger.debug(f"Kept {len(own)} of {len(child_dependencies)} dependencies after removing inherited ones")
    return own
