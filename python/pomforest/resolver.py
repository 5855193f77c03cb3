"""Resolves the module and parent GAV of pom.xml descriptors."""

import json
import logging
import os
from typing import Dict, Optional, Tuple

from .maven_client import MavenClient, MavenCommandError

logger = logging.getLogger(__name__)

GavPair = Tuple[str, str]
EMPTY_GAV_PAIR: GavPair = ("", "")


def normalize_path(path: str) -> str:
    """Cache key for a descriptor path."""
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


class GavResolver:
    """
    Resolves (module GAV, parent GAV) pairs for pom.xml files.

    A single GAV reader invocation reports every descriptor Maven loaded for
    the reactor, so one cache miss usually warms the cache for the sibling
    modules too. The resolver is the only writer of its cache.
    """

    def __init__(self, client: MavenClient, cache: Optional[Dict[str, GavPair]] = None):
        self.client = client
        self.cache: Dict[str, GavPair] = cache if cache is not None else {}

    def resolve(self, pom_path: str) -> GavPair:
        """
        Get the GAV of a pom.xml and the GAV of its parent.

        Returns:
            (pom GAV, parent GAV), or ("", "") if the GAV could not be read
        """
        key = normalize_path(pom_path)
        cached = self.cache.get(key)
        if cached:
            return cached

        pom_dir = os.path.dirname(os.path.abspath(pom_path))
        try:
            output = self.client.read_gavs(pom_dir)
            for line in output.splitlines():
                if not line.strip():
                    continue
                self._cache_gav_line(line)
        except (MavenCommandError, ValueError, KeyError, TypeError) as e:
            logger.error(
                f"Could not parse pom.xml GAV.\n"
                f"Try installing it by running \"mvn clean install\" from {pom_dir}."
            )
            if isinstance(e, MavenCommandError):
                logger.error(e.output)
            else:
                logger.error(f"Malformed GAV reader output: {e}")
            return EMPTY_GAV_PAIR

        return self.cache.get(key, EMPTY_GAV_PAIR)

    def _cache_gav_line(self, line: str) -> None:
        # Windows paths arrive with raw backslashes
        gav_json = json.loads(line.replace('\\', '\\\\'))
        pom_path = gav_json['pomPath']
        gav = gav_json.get('gav') or ""
        parent_gav = gav_json.get('parentGav') or ""
        self.cache[normalize_path(pom_path)] = (gav, parent_gav)
        logger.debug(f"Cached GAV {gav} (parent: {parent_gav or 'none'}) for {pom_path}")
