"""Builds the prototype module hierarchy from a set of pom.xml files."""

import logging
import os
from typing import Dict, Iterator, List, Optional

from .maven_client import GavReaderInstaller
from .models import ModuleIdentity, PrototypeNode
from .resolver import GavResolver

logger = logging.getLogger(__name__)


class ModuleForest:
    """
    A set of disjoint module trees indexed by module identity.

    Every node in the forest is reachable through the identity index, so
    lookups do not walk the trees. Each identity appears at most once.
    """

    def __init__(self):
        self.roots: List[PrototypeNode] = []
        self._nodes: Dict[ModuleIdentity, PrototypeNode] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[PrototypeNode]:
        for root in self.roots:
            yield from root.walk()

    def find(self, identity: ModuleIdentity) -> Optional[PrototypeNode]:
        return self._nodes.get(identity)

    def detach(self, node: PrototypeNode) -> None:
        """Remove a node (with its subtree) from its current position."""
        if node.parent is not None:
            node.parent.remove_child(node)
        elif node in self.roots:
            self.roots.remove(node)

    def add_root(self, node: PrototypeNode) -> None:
        node.parent = None
        self.roots.append(node)
        self._index(node)

    def add_child(self, parent: PrototypeNode, node: PrototypeNode) -> None:
        parent.add_child(node)
        self._index(node)

    def ancestors(self, node: PrototypeNode) -> Iterator[PrototypeNode]:
        current = node.parent
        while current is not None:
            yield current
            current = current.parent

    def _index(self, node: PrototypeNode) -> None:
        for member in node.walk():
            self._nodes[member.identity] = member

    def insert(self, node: PrototypeNode) -> None:
        """
        Place a detached node under its parent identity.

        If the parent is not in the forest yet, a placeholder root is created
        for it. The placeholder is unified with the real node if a pom.xml
        with that identity is processed later.
        """
        if not node.parent_identity:
            self.add_root(node)
            return

        if node.parent_identity == node.identity:
            logger.warning(f"Module {node.identity} declares itself as its parent, adding it as a root")
            self.add_root(node)
            return

        parent = self.find(node.parent_identity)
        if parent is None:
            placeholder = PrototypeNode(identity=node.parent_identity)
            placeholder.add_child(node)
            self.add_root(placeholder)
            return

        if parent is node or node in self.ancestors(parent):
            logger.warning(
                f"Module {node.identity} declares parent {node.parent_identity} which is one of its "
                f"own descendants, adding it as a root"
            )
            self.add_root(node)
            return

        self.add_child(parent, node)

    def remove_rootless_roots(self) -> None:
        """
        Drop roots that were never matched to a pom.xml in the workspace.

        Such roots are parents living outside the scanned directories (e.g. a
        corporate parent POM); their children become roots in their place.
        """
        roots = []
        pending = list(self.roots)
        while pending:
            root = pending.pop(0)
            if not root.is_placeholder:
                roots.append(root)
                continue
            logger.debug(f"Removing {root.identity} from the module tree, its pom.xml is not in the workspace")
            self._nodes.pop(root.identity, None)
            children = list(root.children)
            for child in children:
                root.remove_child(child)
            pending[0:0] = children
        self.roots = roots


class PrototypeTreeBuilder:
    """
    Reconstructs the parent/child hierarchy of Maven modules.

    For each pom.xml (shortest path first, so aggregators tend to come
    before their modules):
    1. resolve its GAV and parent GAV
    2. look the GAV up in the forest; if found, detach that node (it may be a
       placeholder created for one of its children), otherwise create one
    3. update the node's descriptor directory and parent GAV
    4. re-insert it under its parent, creating a placeholder parent if needed
    Finally, placeholder roots are removed and their children promoted.
    """

    def __init__(self, resolver: GavResolver, installer: Optional[GavReaderInstaller] = None):
        self.resolver = resolver
        self.installer = installer

    def build(self, pom_paths: List[str]) -> List[PrototypeNode]:
        """
        Build the module forest.

        Args:
            pom_paths: Paths of pom.xml files, in any order

        Returns:
            Root nodes of the module forest
        """
        if self.installer is not None:
            self.installer.ensure()

        forest = ModuleForest()
        for pom_path in sorted(pom_paths, key=len):
            pom_gav, parent_gav = self.resolver.resolve(pom_path)
            if not pom_gav:
                logger.debug(f"Skipping {pom_path}, its GAV could not be resolved")
                continue
            self.add_module(forest, pom_path, ModuleIdentity.from_string(pom_gav),
                            ModuleIdentity.from_string(parent_gav))

        forest.remove_rootless_roots()
        logger.info(f"Built module forest with {len(forest.roots)} root(s) and {len(forest)} module(s)")
        return forest.roots

    @staticmethod
    def add_module(forest: ModuleForest, pom_path: str, identity: ModuleIdentity,
                   parent_identity: ModuleIdentity) -> PrototypeNode:
        node = forest.find(identity)
        if node is not None:
            forest.detach(node)
        else:
            node = PrototypeNode(identity=identity)

        node.descriptor_dir = os.path.dirname(os.path.abspath(pom_path))
        node.parent_identity = parent_identity
        forest.insert(node)
        return node
