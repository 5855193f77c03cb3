"""Tests for prototype module tree reconciliation."""

import itertools
import os
from unittest.mock import Mock

import pytest
from pomforest.maven_client import GavReaderInstaller
from pomforest.models import ModuleIdentity, PrototypeNode
from pomforest.tree_builder import ModuleForest, PrototypeTreeBuilder


class FakeResolver:
    """Resolver answering from a fixed path -> (gav, parent gav) table."""

    def __init__(self, gavs):
        self.gavs = gavs
        self.calls = []

    def resolve(self, pom_path):
        self.calls.append(pom_path)
        return self.gavs.get(pom_path, ("", ""))


def _pom(name):
    return os.path.join(os.sep, "ws", name, "pom.xml")


def _identity(gav):
    return ModuleIdentity.from_string(gav)


def _assert_valid_forest(roots):
    """No identity twice, parent links consistent, no node its own ancestor."""
    seen = set()
    for root in roots:
        assert root.parent is None
        for node in root.walk():
            assert node.identity not in seen
            seen.add(node.identity)
            for child in node.children:
                assert child.parent is node
            ancestor = node.parent
            while ancestor is not None:
                assert ancestor is not node
                ancestor = ancestor.parent
    return seen


class TestPrototypeTreeBuilder:
    """Tests for PrototypeTreeBuilder.build."""

    @pytest.mark.parametrize("order", [[_pom("a"), _pom("p")], [_pom("p"), _pom("a")]])
    def test_parent_and_child_in_either_order(self, order):
        """Test a two-module tree regardless of processing order."""
        resolver = FakeResolver({
            _pom("a"): ("g:a:1", "g:p:1"),
            _pom("p"): ("g:p:1", ""),
        })

        roots = PrototypeTreeBuilder(resolver).build(order)

        assert len(roots) == 1
        assert roots[0].identity == _identity("g:p:1")
        assert roots[0].descriptor_dir == os.path.dirname(_pom("p"))
        assert [child.identity for child in roots[0].children] == [_identity("g:a:1")]
        assert roots[0].children[0].descriptor_dir == os.path.dirname(_pom("a"))

    def test_missing_parent_is_swept(self):
        """Test that a parent outside the workspace is removed and the child promoted."""
        resolver = FakeResolver({_pom("a"): ("g:a:1", "g:missing:1")})

        roots = PrototypeTreeBuilder(resolver).build([_pom("a")])

        assert [root.identity for root in roots] == [_identity("g:a:1")]
        assert roots[0].parent is None
        assert roots[0].parent_identity == _identity("g:missing:1")

    def test_placeholder_keeps_children_after_unification(self):
        """Test that a placeholder matched later keeps every child it collected."""
        resolver = FakeResolver({
            _pom("a"): ("g:a:1", "g:p:1"),
            _pom("b"): ("g:b:1", "g:p:1"),
            _pom("c"): ("g:c:1", "g:p:1"),
            os.path.join(os.sep, "ws", "parent-dir", "pom.xml"): ("g:p:1", "g:corp:7"),
        })
        paths = [_pom("a"), _pom("b"), _pom("c"), os.path.join(os.sep, "ws", "parent-dir", "pom.xml")]

        roots = PrototypeTreeBuilder(resolver).build(paths)

        assert len(roots) == 1
        parent = roots[0]
        assert parent.identity == _identity("g:p:1")
        assert not parent.is_placeholder
        assert parent.parent_identity == _identity("g:corp:7")
        assert {child.identity for child in parent.children} == {
            _identity("g:a:1"), _identity("g:b:1"), _identity("g:c:1")
        }

    def test_placeholder_moves_under_its_own_parent(self):
        """Test that a unified placeholder is re-inserted below its real parent."""
        resolver = FakeResolver({
            _pom("r"): ("g:root:1", ""),
            _pom("l"): ("g:leaf:1", "g:mid:1"),
            _pom("m"): ("g:mid:1", "g:root:1"),
        })

        roots = PrototypeTreeBuilder(resolver).build([_pom("r"), _pom("l"), _pom("m")])

        assert [root.identity for root in roots] == [_identity("g:root:1")]
        mid = roots[0].children[0]
        assert mid.identity == _identity("g:mid:1")
        assert [child.identity for child in mid.children] == [_identity("g:leaf:1")]
        _assert_valid_forest(roots)

    def test_unresolved_descriptors_are_skipped(self):
        resolver = FakeResolver({_pom("a"): ("g:a:1", "")})

        roots = PrototypeTreeBuilder(resolver).build([_pom("a"), _pom("b")])

        assert [root.identity for root in roots] == [_identity("g:a:1")]

    def test_shortest_path_processed_first(self):
        resolver = FakeResolver({})
        deep = os.path.join(os.sep, "ws", "x", "y", "pom.xml")

        PrototypeTreeBuilder(resolver).build([deep, _pom("a"), os.path.join(os.sep, "ws", "pom.xml")])

        assert resolver.calls == [os.path.join(os.sep, "ws", "pom.xml"), _pom("a"), deep]

    def test_identity_match_is_case_insensitive(self):
        resolver = FakeResolver({
            _pom("a"): ("G:A:1", "g:p:1"),
            _pom("p"): ("G:P:1", ""),
        })

        roots = PrototypeTreeBuilder(resolver).build([_pom("a"), _pom("p")])

        assert len(roots) == 1
        assert len(roots[0].children) == 1

    def test_self_parent_becomes_root(self):
        resolver = FakeResolver({_pom("a"): ("g:a:1", "g:a:1")})

        roots = PrototypeTreeBuilder(resolver).build([_pom("a")])

        assert [root.identity for root in roots] == [_identity("g:a:1")]
        assert roots[0].children == []

    def test_cyclic_parents_do_not_break_the_forest(self):
        """Test two modules naming each other as parent."""
        resolver = FakeResolver({
            _pom("a"): ("g:a:1", "g:b:1"),
            _pom("b"): ("g:b:1", "g:a:1"),
        })

        roots = PrototypeTreeBuilder(resolver).build([_pom("a"), _pom("b")])

        assert _assert_valid_forest(roots) == {_identity("g:a:1"), _identity("g:b:1")}

    def test_valid_forest_for_every_order(self):
        """Test forest invariants over all processing orders of a small reactor."""
        gavs = {
            _pom("p"): ("g:p:1", "g:corp:1"),
            _pom("a"): ("g:a:1", "g:p:1"),
            _pom("b"): ("g:b:1", "g:a:1"),
            _pom("c"): ("g:c:1", "g:p:1"),
            _pom("d"): ("g:d:1", "g:other:1"),
        }

        for order in itertools.permutations(gavs):
            roots = PrototypeTreeBuilder(FakeResolver(gavs)).build(list(order))

            identities = _assert_valid_forest(roots)
            assert identities == {_identity(gav) for gav, _ in gavs.values()}
            assert sorted(root.identity.gav for root in roots) == ["g:d:1", "g:p:1"]
            assert all(not node.is_placeholder for root in roots for node in root.walk())

    def test_installer_runs_once(self):
        """Test that the reader installation guard is shared across builds."""
        client = Mock()
        installer = GavReaderInstaller(client, jar_path=__file__)
        builder = PrototypeTreeBuilder(FakeResolver({}), installer)

        builder.build([])
        builder.build([])

        client.install_file.assert_called_once_with(__file__)
        assert installer.installed


class TestModuleForest:
    """Tests for ModuleForest."""

    def test_insert_creates_placeholder_root(self):
        forest = ModuleForest()
        node = PrototypeNode(identity=_identity("g:a:1"), parent_identity=_identity("g:p:1"), descriptor_dir="/ws/a")

        forest.insert(node)

        assert len(forest.roots) == 1
        assert forest.roots[0].is_placeholder
        assert forest.find(_identity("g:p:1")) is forest.roots[0]
        assert forest.find(_identity("g:a:1")) is node
        assert node.parent is forest.roots[0]

    def test_detach_nested_node(self):
        forest = ModuleForest()
        parent = PrototypeNode(identity=_identity("g:p:1"), descriptor_dir="/ws")
        child = PrototypeNode(identity=_identity("g:a:1"), parent_identity=_identity("g:p:1"), descriptor_dir="/ws/a")
        forest.insert(parent)
        forest.insert(child)

        forest.detach(child)

        assert parent.children == []
        assert child.parent is None

    def test_sweep_promotes_children_in_place(self):
        forest = ModuleForest()
        first = PrototypeNode(identity=_identity("g:first:1"), descriptor_dir="/ws/first")
        forest.insert(first)
        for name in ("x", "y"):
            forest.insert(PrototypeNode(identity=_identity(f"g:{name}:1"),
                                        parent_identity=_identity("g:outside:1"),
                                        descriptor_dir=f"/ws/{name}"))

        forest.remove_rootless_roots()

        assert [root.identity.artifact_id for root in forest.roots] == ["first", "x", "y"]
        assert forest.find(_identity("g:outside:1")) is None
