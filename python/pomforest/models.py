"""Core data models for pomforest."""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class ModuleIdentity:
    """Represents a Maven identity triple (groupId, artifactId, version)."""

    group_id: str = ""
    artifact_id: str = ""
    version: str = ""

    @classmethod
    def from_string(cls, gav: Optional[str]) -> 'ModuleIdentity':
        """Build an identity from a 'groupId:artifactId:version' string."""
        if not gav:
            return cls()
        parts = gav.strip().split(':')
        if len(parts) < 3:
            parts.extend([''] * (3 - len(parts)))
        # Extra fields (packaging, classifier) sit between artifactId and version
        return cls(group_id=parts[0], artifact_id=parts[1], version=parts[-1])

    @property
    def gav(self) -> str:
        """Return the identity in groupId:artifactId:version format."""
        if not self:
            return ""
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def key(self) -> str:
        """Case-normalized form used for equality and lookups."""
        return self.gav.lower()

    def __bool__(self) -> bool:
        return bool(self.group_id or self.artifact_id or self.version)

    def __str__(self) -> str:
        return self.gav

    def __eq__(self, other) -> bool:
        if not isinstance(other, ModuleIdentity):
            return False
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass
class PrototypeNode:
    """
    A module in the reconstructed module hierarchy.

    A node without a descriptor directory is a placeholder: it was created
    because a child referenced it as a parent before (or without) its own
    pom.xml being processed.
    """

    identity: ModuleIdentity
    parent_identity: ModuleIdentity = field(default_factory=ModuleIdentity)
    descriptor_dir: str = ""
    children: List['PrototypeNode'] = field(default_factory=list, repr=False)
    parent: Optional['PrototypeNode'] = field(default=None, repr=False, compare=False)

    def __eq__(self, other) -> bool:
        """Equality based on object identity, nodes are mutated in place."""
        return self is other

    def __hash__(self) -> int:
        return id(self)

    @property
    def is_placeholder(self) -> bool:
        return not self.descriptor_dir

    def add_child(self, child: 'PrototypeNode') -> None:
        """Append a child and take ownership of it."""
        child.parent = self
        self.children.append(child)

    def remove_child(self, child: 'PrototypeNode') -> None:
        self.children.remove(child)
        child.parent = None

    def walk(self) -> Iterator['PrototypeNode']:
        """Iterate over this node and all descendants, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def get_tree_representation(self) -> str:
        """Generate a tree visualization string of the module hierarchy."""
        lines = []
        stack = [(self, "", True, 0)]
        while stack:
            node, prefix, is_last, depth = stack.pop()
            label = node.identity.gav
            if node.descriptor_dir:
                label += f" ({node.descriptor_dir})"
            if depth == 0:
                lines.append(label)
                child_prefix = ""
            else:
                connector = "└── " if is_last else "├── "
                lines.append(f"{prefix}{connector}{label}")
                child_prefix = prefix + ("    " if is_last else "│   ")
            count = len(node.children)
            for i in range(count - 1, -1, -1):
                stack.append((node.children[i], child_prefix, i == count - 1, depth + 1))
        return "\n".join(lines)


@dataclass
class DependencyNode:
    """
    Represents a node in a module's dependency tree.

    Module nodes (is_module=True) carry the descriptor directory of a
    pom.xml and hold both their submodules and their own dependencies.
    """

    identity: ModuleIdentity
    scope: str = ""
    packaging: str = ""
    is_module: bool = False
    descriptor_dir: str = ""
    children: List['DependencyNode'] = field(default_factory=list, repr=False)
    parent: Optional['DependencyNode'] = field(default=None, repr=False, compare=False)

    def __eq__(self, other) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def add_child(self, child: 'DependencyNode') -> None:
        child.parent = self
        self.children.append(child)

    @property
    def modules(self) -> List['DependencyNode']:
        return [child for child in self.children if child.is_module]

    @property
    def dependencies(self) -> List['DependencyNode']:
        return [child for child in self.children if not child.is_module]

    def get_tree_representation(self, prefix: str = "", is_last: bool = True, depth: int = 0) -> str:
        """Generate a tree visualization string."""
        label = self.identity.gav
        if self.scope:
            label += f" [{self.scope}]"
        if self.is_module:
            label = f"📦 {label}"

        if depth == 0:
            lines = [label]
        else:
            connector = "└── " if is_last else "├── "
            lines = [f"{prefix}{connector}{label}"]

        for i, child in enumerate(self.children):
            is_last_child = (i == len(self.children) - 1)
            if depth == 0:
                child_prefix = ""
            else:
                child_prefix = prefix + ("    " if is_last else "│   ")
            lines.append(child.get_tree_representation(child_prefix, is_last_child, depth + 1))

        return "\n".join(lines)

    def collect_dependencies(self) -> List['DependencyNode']:
        """Collect every non-module node in this tree."""
        collected = []
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if not node.is_module:
                collected.append(node)
            stack.extend(reversed(node.children))
        return collected


@dataclass(frozen=True)
class Position:
    """A zero-based (line, character) offset into a text document."""

    line: int
    character: int


@dataclass(frozen=True)
class PositionSpan:
    """Start and end positions delimiting a matched token."""

    start: Position
    end: Position
