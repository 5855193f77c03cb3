"""Client for invoking the Maven executable."""

import logging
import os
import re
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

GAV_READER_GOAL = "com.jfrog.ide:maven-gav-reader:gav"
INSTALL_FILE_GOAL = "org.apache.maven.plugins:maven-install-plugin:2.5.2:install-file"
DEPENDENCY_TREE_GOAL = "dependency:tree"

_BRACKET_TAG = re.compile(r'(\[.*?\])')


class MavenCommandError(Exception):
    """Raised when a Maven invocation exits non-zero or cannot be started."""

    def __init__(self, command: Sequence[str], cwd: Optional[str] = None, returncode: Optional[int] = None,
                 stdout: str = "", stderr: str = ""):
        self.command = list(command)
        self.cwd = cwd
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        where = f" in {cwd}" if cwd else ""
        super().__init__(f"'{' '.join(self.command)}'{where} failed with exit code {returncode}")

    @property
    def output(self) -> str:
        """Captured tool output with Maven's [INFO]/[ERROR] style tags removed."""
        return strip_bracket_tags(self.stdout or self.stderr)


class MavenNotFoundError(MavenCommandError):
    """Raised when the Maven executable is not available."""


def strip_bracket_tags(output: str) -> str:
    return _BRACKET_TAG.sub('', output or '')


class MavenClient:
    """Client for running Maven goals as blocking subprocesses."""

    def __init__(self, executable: str = "mvn", timeout: Optional[float] = None):
        """
        Initialize the client.

        Args:
            executable: Maven command, may include extra arguments (e.g. "mvn -o")
            timeout: Optional timeout in seconds for each invocation
        """
        self.command = shlex.split(executable) or ["mvn"]
        # Resolves mvn.cmd on Windows
        self.command[0] = shutil.which(self.command[0]) or self.command[0]
        self.timeout = timeout

    def run(self, args: List[str], cwd: Optional[str] = None) -> str:
        """
        Run a Maven command and return its standard output.

        Raises:
            MavenCommandError: If the process cannot be started, times out or
                exits with a non-zero code
        """
        cmd = self.command + list(args)
        logger.debug(f"Running '{' '.join(cmd)}' in {cwd or os.getcwd()}")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MavenCommandError(cmd, cwd=cwd, stderr=str(e)) from e

        if result.returncode != 0:
            raise MavenCommandError(cmd, cwd=cwd, returncode=result.returncode,
                                    stdout=result.stdout, stderr=result.stderr)
        return result.stdout

    def verify_installed(self) -> bool:
        """Probe 'mvn -version', returns False when Maven is not usable."""
        try:
            self.run(["-version"])
        except MavenCommandError as e:
            logger.debug(f"Maven probe failed: {e}")
            return False
        return True

    def install_file(self, jar_path: str) -> None:
        """Install a jar into the local Maven repository."""
        self.run([INSTALL_FILE_GOAL, f"-Dfile={jar_path}"])

    def read_gavs(self, cwd: str) -> str:
        """Run the GAV reader plugin, output is one JSON object per line."""
        return self.run([GAV_READER_GOAL, "-q"], cwd=cwd)

    def dependency_tree(self, cwd: str) -> str:
        """
        Run 'mvn dependency:tree' in a module directory.

        The report is written to a temporary file so the Maven log does not
        get mixed into it. Every reactor module appends its own section.

        Returns:
            The raw report text
        """
        with tempfile.TemporaryDirectory(prefix="pomforest-") as tmp_dir:
            output_file = Path(tmp_dir) / "dependency-tree.txt"
            self.run([DEPENDENCY_TREE_GOAL, f"-DoutputFile={output_file}", "-DappendOutput=true", "-B"], cwd=cwd)
            if not output_file.exists():
                logger.warning(f"dependency:tree produced no report in {cwd}")
                return ""
            try:
                with open(output_file, 'r', encoding='utf-8', errors='replace') as f:
                    return f.read()
            except OSError as e:
                raise MavenCommandError([DEPENDENCY_TREE_GOAL], cwd=cwd, stderr=str(e)) from e


class GavReaderInstaller:
    """One-shot guard that installs the GAV reader plugin at most once."""

    def __init__(self, client: MavenClient, jar_path: Optional[str]):
        self.client = client
        self.jar_path = jar_path
        self.installed = False

    def ensure(self) -> bool:
        """
        Install the reader jar unless this guard already ran.

        Returns:
            True if the installation ran during this call
        """
        if self.installed:
            return False
        self.installed = True

        if not self.jar_path or not Path(self.jar_path).exists():
            logger.warning(f"GAV reader jar not found at {self.jar_path}, assuming it is already installed")
            return False

        logger.info(f"Installing Maven GAV reader from {self.jar_path}")
        try:
            self.client.install_file(self.jar_path)
        except MavenCommandError as e:
            logger.error(f"Could not install the Maven GAV reader: {e}")
            logger.error(e.output)
            return False
        return True
