"""Output formatters for module and dependency forests."""

import json
import logging
from datetime import datetime, timezone
from typing import Collection, Dict, List, Optional
from uuid import uuid4

from cyclonedx.model import ExternalReference, ExternalReferenceType, XsUri
from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component, ComponentScope, ComponentType
from cyclonedx.output.json import JsonV1Dot6
from packageurl import PackageURL

from .models import DependencyNode, ModuleIdentity, Position, PositionSpan, PrototypeNode

logger = logging.getLogger(__name__)

PROJECT_URL = "https://github.com/pomforest/pomforest"


class OutputFormatter:
    """Formatter for various output formats."""

    @staticmethod
    def format_as_list(components: Collection[ModuleIdentity]) -> str:
        """Format dependency identities as a sorted flat list (one per line)."""
        lines = sorted({identity.gav for identity in components})
        return '\n'.join(lines) + '\n'

    @staticmethod
    def format_as_tree(module_trees: List[DependencyNode]) -> str:
        """Format module dependency trees as a tree visualization."""
        lines = ["Dependency Tree:", ""]
        for tree in module_trees:
            lines.append(tree.get_tree_representation())

        modules = sum(1 + OutputFormatter._count_submodules(tree) for tree in module_trees)
        dependencies = {dep.identity for tree in module_trees for dep in tree.collect_dependencies()}
        lines.extend([
            "",
            "Dependency Statistics:",
            f"  Modules: {modules}",
            f"  Unique Dependencies: {len(dependencies)}",
        ])
        return '\n'.join(lines) + '\n'

    @staticmethod
    def format_module_forest(roots: List[PrototypeNode]) -> str:
        """Format the reconciled module hierarchy."""
        if not roots:
            return "No Maven modules found.\n"
        return '\n'.join(root.get_tree_representation() for root in roots) + '\n'

    @staticmethod
    def format_positions(spans: List[PositionSpan]) -> str:
        """Format spans as 1-based 'line:col-line:col' entries, one per line."""
        def _fmt(position: Position) -> str:
            return f"{position.line + 1}:{position.character + 1}"

        return ''.join(f"{_fmt(span.start)}-{_fmt(span.end)}\n" for span in spans)

    @staticmethod
    def format_as_sbom(module_trees: List[DependencyNode], command_line: Optional[str] = None) -> str:
        """Generate a CycloneDX SBOM in JSON format, modules included as components."""
        from . import __version__

        bom = Bom()
        bom.serial_number = uuid4()
        bom.metadata.timestamp = datetime.now(timezone.utc).replace(microsecond=0)

        tool_purl = PackageURL(type="pypi", name="pomforest", version=__version__)
        tool_component = Component(
            name="pomforest",
            version=__version__,
            type=ComponentType.APPLICATION,
            purl=tool_purl,
            bom_ref=tool_purl.to_string(),
            external_references=[
                ExternalReference(type=ExternalReferenceType.VCS, url=XsUri(PROJECT_URL))
            ],
        )
        bom.metadata.tools.components.add(tool_component)

        dependency_map = OutputFormatter._build_dependency_map(module_trees)
        nodes_by_purl: Dict[str, DependencyNode] = {}
        for tree in module_trees:
            OutputFormatter._collect_nodes(tree, nodes_by_purl)

        for node in nodes_by_purl.values():
            bom.components.add(OutputFormatter._node_to_component(node))

        sbom = json.loads(JsonV1Dot6(bom).output_as_string())

        dependencies = []
        for purl in sorted(dependency_map):
            dependencies.append({
                "ref": purl,
                "dependsOn": sorted(dependency_map[purl]),
            })
        sbom['dependencies'] = dependencies

        if command_line:
            metadata = sbom.setdefault('metadata', {})
            metadata.setdefault('properties', []).append({
                'name': 'commandLine',
                'value': command_line,
            })

        sbom['components'] = sorted(sbom.get('components', []), key=lambda c: c.get('purl', ''))
        return json.dumps(sbom, indent=2)

    @staticmethod
    def _count_submodules(tree: DependencyNode) -> int:
        count = 0
        stack = list(tree.modules)
        while stack:
            module = stack.pop()
            count += 1
            stack.extend(module.modules)
        return count

    @staticmethod
    def _collect_nodes(tree: DependencyNode, nodes_by_purl: Dict[str, DependencyNode]) -> None:
        stack = [tree]
        while stack:
            node = stack.pop()
            purl = OutputFormatter._build_purl(node.identity, node.packaging)
            # Module entries win over a dependency entry for the same coordinates
            if purl not in nodes_by_purl or node.is_module:
                nodes_by_purl[purl] = node
            stack.extend(node.children)

    @staticmethod
    def _build_dependency_map(trees: List[DependencyNode]) -> Dict[str, List[str]]:
        """Build a map of purl -> purls of direct children from the tree structure."""
        dependency_map: Dict[str, List[str]] = {}
        stack = list(trees)
        while stack:
            node = stack.pop()
            purl = OutputFormatter._build_purl(node.identity, node.packaging)
            children = dependency_map.setdefault(purl, [])
            for child in node.children:
                child_purl = OutputFormatter._build_purl(child.identity, child.packaging)
                if child_purl not in children:
                    children.append(child_purl)
            stack.extend(node.children)
        return dependency_map

    @staticmethod
    def _maven_scope_to_cyclonedx(maven_scope: str) -> ComponentScope:
        """
        Map Maven scope to CycloneDX ComponentScope.

        Maven scopes:
          compile, runtime -> REQUIRED (needed at runtime)
          test, provided, system -> EXCLUDED (not needed at runtime)
        """
        scope_lower = (maven_scope or "compile").lower()
        if scope_lower in ("test", "provided", "system"):
            return ComponentScope.EXCLUDED
        return ComponentScope.REQUIRED

    @staticmethod
    def _node_to_component(node: DependencyNode) -> Component:
        """Convert a dependency tree node to a CycloneDX Component."""
        purl = OutputFormatter._build_purl(node.identity, node.packaging)
        component = Component(
            name=node.identity.artifact_id,
            version=node.identity.version,
            group=node.identity.group_id or None,
            type=ComponentType.APPLICATION if node.is_module else ComponentType.LIBRARY,
            purl=PackageURL.from_string(purl),
            bom_ref=purl,
        )
        if not node.is_module:
            component.scope = OutputFormatter._maven_scope_to_cyclonedx(node.scope)
        return component

    @staticmethod
    def _build_purl(identity: ModuleIdentity, packaging: str = "") -> str:
        """Build a Package URL (purl) string for a Maven identity."""
        qualifiers = {"type": packaging} if packaging and packaging != "jar" else None
        return PackageURL(
            type="maven",
            namespace=identity.group_id or None,
            name=identity.artifact_id,
            version=identity.version or None,
            qualifiers=qualifiers,
        ).to_string()
