"""Main CLI entry point for pomforest."""

import argparse
import locale
import logging
import sys
from typing import Optional

from . import __version__
from .formatters import OutputFormatter
from .locator import DEFAULT_EXCLUDE_PATTERNS
from .maven_client import MavenNotFoundError
from .models import DependencyNode, ModuleIdentity
from .positions import find_dependencies_section_position, find_dependency_position
from .workspace import ScanOptions, WorkspaceScanner, default_gav_reader_jar, default_maven_executable

logger = logging.getLogger(__name__)

MAVEN_NOT_FOUND_MESSAGE = 'Could not scan Maven project dependencies, because "mvn" is not in the PATH.'


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.DEBUG if log_level.upper() == 'TRACE' else logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def setup_collation():
    """Use the user's locale for ordering descriptor paths."""
    try:
        locale.setlocale(locale.LC_COLLATE, '')
    except locale.Error as e:
        logger.debug(f"Keeping the default collation locale: {e}")


def build_options(args) -> ScanOptions:
    """Map command line flags onto scan options."""
    return ScanOptions(
        maven_executable=args.mvn,
        gav_reader_jar=args.gav_reader_jar,
        exclude_patterns=tuple(args.exclude) if args.exclude else DEFAULT_EXCLUDE_PATTERNS,
        timeout=args.timeout,
    )


def write_output(output: str, output_file: str) -> int:
    try:
        if output_file == '-':
            print(output, end='')
        else:
            with open(output_file, 'w') as f:
                f.write(output)
            logger.info(f"Output written to: {output_file}")
            print(f"Output written to: {output_file}")
    except OSError as e:
        logger.error(f"Error writing output: {e}")
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    return 0


def handle_scan(args):
    """Handle the 'scan' subcommand."""
    setup_logging(args.verbose, args.loglevel)
    command_line = ' '.join(sys.argv[1:])

    scanner = WorkspaceScanner(build_options(args))
    try:
        module_trees = scanner.scan(args.roots)
    except MavenNotFoundError:
        logger.error(MAVEN_NOT_FOUND_MESSAGE)
        print(MAVEN_NOT_FOUND_MESSAGE, file=sys.stderr)
        return 1

    if not module_trees:
        print("No Maven dependencies found in the workspace.", file=sys.stderr)

    if args.output_format == 'list':
        output = OutputFormatter.format_as_list(scanner.components)
    elif args.output_format == 'sbom':
        output = OutputFormatter.format_as_sbom(module_trees, command_line)
    else:
        output = OutputFormatter.format_as_tree(module_trees)

    return write_output(output, args.output)


def handle_modules(args):
    """Handle the 'modules' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    scanner = WorkspaceScanner(build_options(args))
    try:
        roots = scanner.build_module_forest(args.roots)
    except MavenNotFoundError:
        logger.error(MAVEN_NOT_FOUND_MESSAGE)
        print(MAVEN_NOT_FOUND_MESSAGE, file=sys.stderr)
        return 1

    return write_output(OutputFormatter.format_module_forest(roots), args.output)


def handle_locate(args):
    """Handle the 'locate' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    try:
        with open(args.pom, 'r') as f:
            text = f.read()
    except OSError as e:
        logger.error(f"Error reading {args.pom}: {e}")
        print(f"Error reading {args.pom}: {e}", file=sys.stderr)
        return 1

    if args.section:
        span = find_dependencies_section_position(text)
        spans = [span] if span else []
    else:
        if not args.gav:
            print("A groupId:artifactId[:version] argument is required", file=sys.stderr)
            return 1
        node = DependencyNode(identity=ModuleIdentity.from_string(args.gav))
        spans = find_dependency_position(text, node)

    if not spans:
        print("No matching declaration found", file=sys.stderr)
        return 1

    print(OutputFormatter.format_positions(spans), end='')
    return 0


def _add_common_arguments(parser):
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--loglevel',
                        choices=['TRACE', 'DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set log level')


def _add_scan_arguments(parser):
    parser.add_argument('roots', nargs='+', help='Workspace root directories')
    parser.add_argument('-o', '--output', default='-',
                        help='Output file (default: stdout, use - for stdout)')
    parser.add_argument('--mvn', default=default_maven_executable(),
                        help='Maven executable (default: $MAVEN_CMD or mvn)')
    parser.add_argument('--gav-reader-jar', default=default_gav_reader_jar(),
                        help='Path of the maven-gav-reader jar to install before scanning')
    parser.add_argument('--exclude', action='append', metavar='PATTERN',
                        help='Directory glob pattern to skip (repeatable). '
                             f'Default: {", ".join(DEFAULT_EXCLUDE_PATTERNS)}')
    parser.add_argument('--timeout', type=float, default=None,
                        help='Timeout in seconds for each Maven invocation')
    _add_common_arguments(parser)


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog='pomforest',
        description='Reconstructs Maven multi-module hierarchies and attributes dependencies to modules'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    scan_parser = subparsers.add_parser('scan', help='Build the dependency forest of a workspace')
    _add_scan_arguments(scan_parser)
    scan_parser.add_argument('--format', dest='output_format', default='tree',
                             choices=['tree', 'list', 'sbom'],
                             help='Output format (tree, list, sbom). Default: tree')
    scan_parser.set_defaults(func=handle_scan)

    modules_parser = subparsers.add_parser('modules', help='Show the module hierarchy of a workspace')
    _add_scan_arguments(modules_parser)
    modules_parser.set_defaults(func=handle_modules)

    locate_parser = subparsers.add_parser('locate', help='Find a dependency declaration in a pom.xml')
    locate_parser.add_argument('pom', help='Path to pom.xml')
    locate_parser.add_argument('gav', nargs='?', help='groupId:artifactId[:version] of the dependency')
    locate_parser.add_argument('--section', action='store_true',
                               help='Locate the <dependencies> section instead')
    _add_common_arguments(locate_parser)
    locate_parser.set_defaults(func=handle_locate)

    args = parser.parse_args(argv)
    setup_collation()

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
