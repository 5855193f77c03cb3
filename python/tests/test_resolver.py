"""Tests for GAV resolution."""

import json
from unittest.mock import Mock

from pomforest.maven_client import MavenClient, MavenCommandError
from pomforest.resolver import GavResolver, normalize_path


def _gav_line(pom_path, gav, parent_gav=""):
    return json.dumps({"pomPath": pom_path, "gav": gav, "parentGav": parent_gav})


class TestGavResolver:
    """Tests for GavResolver."""

    def setup_method(self):
        self.client = Mock(spec=MavenClient)
        self.resolver = GavResolver(self.client)

    def test_resolves_from_reader_output(self):
        """Test that the reader runs in the descriptor's directory."""
        self.client.read_gavs.return_value = _gav_line("/ws/app/pom.xml", "g:app:1", "g:parent:1") + "\n"

        assert self.resolver.resolve("/ws/app/pom.xml") == ("g:app:1", "g:parent:1")
        self.client.read_gavs.assert_called_once_with("/ws/app")

    def test_single_invocation_warms_cache_for_siblings(self):
        """Test that every line of the reader output is cached."""
        self.client.read_gavs.return_value = "\n".join([
            _gav_line("/ws/pom.xml", "g:parent:1"),
            _gav_line("/ws/a/pom.xml", "g:a:1", "g:parent:1"),
            "",
            _gav_line("/ws/b/pom.xml", "g:b:1", "g:parent:1"),
        ])

        assert self.resolver.resolve("/ws/pom.xml") == ("g:parent:1", "")
        assert self.resolver.resolve("/ws/a/pom.xml") == ("g:a:1", "g:parent:1")
        assert self.resolver.resolve("/ws/b/pom.xml") == ("g:b:1", "g:parent:1")
        assert self.client.read_gavs.call_count == 1
        assert normalize_path("/ws/b/pom.xml") in self.resolver.cache

    def test_cache_hit_skips_reader(self):
        resolver = GavResolver(self.client, cache={normalize_path("/ws/pom.xml"): ("g:a:1", "")})

        assert resolver.resolve("/ws/pom.xml") == ("g:a:1", "")
        self.client.read_gavs.assert_not_called()

    def test_backslashes_are_escaped(self):
        """Test reader output containing raw Windows paths."""
        self.client.read_gavs.return_value = '{"pomPath": "C:\\ws\\pom.xml", "gav": "g:a:1", "parentGav": ""}'

        self.resolver.resolve("/ws/pom.xml")

        assert normalize_path("C:\\ws\\pom.xml") in self.resolver.cache

    def test_command_failure_returns_empty_pair(self, caplog):
        """Test that a failing reader is logged with remediation and is not fatal."""
        self.client.read_gavs.side_effect = MavenCommandError(
            ["mvn", "com.jfrog.ide:maven-gav-reader:gav", "-q"], cwd="/ws",
            returncode=1, stdout="[ERROR] Failed to execute goal"
        )

        assert self.resolver.resolve("/ws/pom.xml") == ("", "")
        assert "mvn clean install" in caplog.text
        assert "Failed to execute goal" in caplog.text
        assert "[ERROR]" not in caplog.text

    def test_malformed_json_returns_empty_pair(self):
        self.client.read_gavs.return_value = "not json"

        assert self.resolver.resolve("/ws/pom.xml") == ("", "")

    def test_descriptor_missing_from_output(self):
        """Test a reader run that does not mention the requested descriptor."""
        self.client.read_gavs.return_value = _gav_line("/ws/other/pom.xml", "g:other:1")

        assert self.resolver.resolve("/ws/pom.xml") == ("", "")
