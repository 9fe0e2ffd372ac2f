"""Argument parsing functionality for artifactns."""

import argparse

from constants import SearchMethod


def _add_common_arguments(parser):
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--local-repo",
                        dest="LOCAL_REPO",
                        help="Local repository directory (default: $M2_REPO or ~/.m2/repository)",
                        action="store",
                        type=str)
    parser.add_argument("--remote",
                        dest="REMOTE",
                        help="Remote repository URL, in lookup order (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--include",
                        dest="INCLUDE",
                        help="Only use these search probes or sources (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--exclude",
                        dest="EXCLUDE",
                        help="Never use these search probes or sources (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--offline",
                        dest="OFFLINE",
                        help=(
                            f"Do not consult the {SearchMethod.REMOTE.value} and "
                            f"{SearchMethod.MVNREPOSITORY.value} probes"
                        ),
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="artifactns",
        description="Artifact namespaces and version requirement resolution",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    resolve = subparsers.add_parser(
        "resolve",
        help="Resolve artifact specs to the best matching version",
    )
    resolve.add_argument("SPECS",
                         help="Spec such as org.x:lib:jar:~>2.0",
                         nargs="+")
    _add_common_arguments(resolve)

    check = subparsers.add_parser(
        "check",
        help="Check versions against a requirement expression",
    )
    check.add_argument("REQUIREMENT",
                       help="Requirement such as '>=1.2 <2.0'")
    check.add_argument("VERSIONS",
                       help="Versions to check",
                       nargs="+")
    _add_common_arguments(check)

    show = subparsers.add_parser(
        "show",
        help="Show the artifacts selected in a configured namespace",
    )
    show.add_argument("NAMESPACE",
                      help="Namespace name (default: root)",
                      nargs="?")
    show.add_argument("--parents",
                      dest="PARENTS",
                      help="Include artifacts inherited from parent namespaces",
                      action="store_true")
    _add_common_arguments(show)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
