"""Builds the Maven dependency forest of a workspace."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .attribution import filter_inherited
from .locator import DEFAULT_EXCLUDE_PATTERNS, locate_descriptors
from .maven_client import GavReaderInstaller, MavenClient, MavenCommandError, MavenNotFoundError
from .models import DependencyNode, ModuleIdentity, PrototypeNode
from .parsers import build_dependency_nodes, parse_dependency_tree
from .resolver import GavResolver
from .tree_builder import PrototypeTreeBuilder

logger = logging.getLogger(__name__)

BUNDLED_GAV_READER_JAR = Path(__file__).parent / "resources" / "maven-gav-reader.jar"


def default_maven_executable() -> str:
    return os.environ.get("MAVEN_CMD", "mvn")


def default_gav_reader_jar() -> str:
    return os.environ.get("POMFOREST_GAV_READER_JAR", str(BUNDLED_GAV_READER_JAR))


@dataclass
class ScanOptions:
    """Settings for a workspace scan."""

    maven_executable: str = field(default_factory=default_maven_executable)
    gav_reader_jar: Optional[str] = field(default_factory=default_gav_reader_jar)
    exclude_patterns: Tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    timeout: Optional[float] = None


class WorkspaceScanner:
    """
    Builds one dependency tree per top-level Maven module of a workspace.

    The scanner owns the Maven client, the GAV cache and the reader
    installation guard, so reusing a scanner across scans reuses all three.
    """

    def __init__(self, options: Optional[ScanOptions] = None, client: Optional[MavenClient] = None):
        self.options = options or ScanOptions()
        self.client = client or MavenClient(self.options.maven_executable, self.options.timeout)
        self.installer = GavReaderInstaller(self.client, self.options.gav_reader_jar)
        self.resolver = GavResolver(self.client)
        self.tree_builder = PrototypeTreeBuilder(self.resolver, self.installer)
        # Every dependency seen during the last scan
        self.components: Set[ModuleIdentity] = set()

    def locate(self, roots: Iterable[str]) -> List[str]:
        return locate_descriptors(roots, self.options.exclude_patterns)

    def build_module_forest(self, roots: Iterable[str]) -> List[PrototypeNode]:
        """Locate the pom.xml files under the roots and reconstruct the module hierarchy."""
        pom_paths = self.locate(roots)
        if not pom_paths:
            logger.debug("No pom.xml files found in workspaces.")
            return []
        self._verify_maven()
        return self.tree_builder.build(pom_paths)

    def scan(self, roots: Iterable[str]) -> List[DependencyNode]:
        """
        Build the dependency forest for the workspace roots.

        Raises:
            MavenNotFoundError: If Maven is not available

        Returns:
            Module nodes of the top-level modules, each holding its submodules
            and the dependencies it declares itself
        """
        pom_paths = self.locate(roots)
        if not pom_paths:
            logger.debug("No pom.xml files found in workspaces.")
            return []
        logger.debug(f"pom.xml files to scan: {pom_paths}")
        self._verify_maven()

        logger.info("Generating Maven Dependency Tree")
        self.components = set()
        prototype_roots = self.tree_builder.build(pom_paths)

        sections: Dict[ModuleIdentity, List[str]] = {}
        scanned_dirs: Set[str] = set()
        results = []
        for prototype_root in prototype_roots:
            logger.info(f"Analyzing pom.xml at {prototype_root.descriptor_dir}")
            for module_node in self._build_module_trees(prototype_root, sections, scanned_dirs):
                if module_node.children:
                    results.append(module_node)
                else:
                    logger.debug(f"Module {module_node.identity} has no dependencies, skipping")

        logger.info(f"Found {len(self.components)} unique dependencies in {len(results)} module tree(s)")
        return results

    def _verify_maven(self) -> None:
        if not self.client.verify_installed():
            raise MavenNotFoundError(self.client.command + ["-version"])

    def _build_module_trees(self, prototype_root: PrototypeNode, sections: Dict[ModuleIdentity, List[str]],
                            scanned_dirs: Set[str]) -> List[DependencyNode]:
        """
        Convert a prototype tree into module nodes with attributed dependencies.

        A module whose dependency tree cannot be produced is left out; its
        submodules are attached to the closest module that succeeded.
        """
        top_level: List[DependencyNode] = []
        # (prototype, module node to attach to, raw dependencies of that module)
        pending: List[Tuple[PrototypeNode, Optional[DependencyNode], Optional[List[str]]]] = [
            (prototype_root, None, None)
        ]

        while pending:
            prototype, parent_node, parent_raw = pending.pop()
            try:
                raw_dependencies = self._raw_dependencies(prototype, sections, scanned_dirs)
            except (MavenCommandError, OSError, ValueError) as e:
                logger.error(
                    f"Could not get dependencies tree from pom.xml.\n"
                    f"Try installing it by running \"mvn clean install\" from {prototype.descriptor_dir}."
                )
                logger.error(e.output if isinstance(e, MavenCommandError) else str(e))
                for child in reversed(prototype.children):
                    pending.append((child, parent_node, parent_raw))
                continue

            own_dependencies = filter_inherited(raw_dependencies, parent_raw)
            if own_dependencies is None:
                own_dependencies = raw_dependencies

            module_node = DependencyNode(
                identity=prototype.identity,
                is_module=True,
                descriptor_dir=prototype.descriptor_dir,
            )
            build_dependency_nodes(own_dependencies, module_node)
            self.components.update(dep.identity for dep in module_node.collect_dependencies())

            if parent_node is None:
                top_level.append(module_node)
            else:
                parent_node.add_child(module_node)

            for child in reversed(prototype.children):
                pending.append((child, module_node, raw_dependencies))

        return top_level

    def _raw_dependencies(self, prototype: PrototypeNode, sections: Dict[ModuleIdentity, List[str]],
                          scanned_dirs: Set[str]) -> List[str]:
        """
        Raw dependency:tree lines of a module.

        Running the goal in an aggregator reports all of its reactor modules,
        so a submodule is usually answered from its parent's report.
        """
        if prototype.identity not in sections and prototype.descriptor_dir not in scanned_dirs:
            scanned_dirs.add(prototype.descriptor_dir)
            report = self.client.dependency_tree(prototype.descriptor_dir)
            sections.update(parse_dependency_tree(report))

        raw_dependencies = sections.get(prototype.identity)
        if raw_dependencies is None:
            logger.warning(f"Module {prototype.identity} is missing from the dependency tree report")
            return []
        return raw_dependencies
