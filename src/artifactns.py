"""artifactns command line entry point.

Subcommands:
    resolve SPEC...             best version for each artifact spec
    check REQUIREMENT VERSION... whether each version satisfies a requirement
    show [NAMESPACE]            artifacts selected in a configured namespace
"""

import logging
import os
import sys

from args import parse_args
from artifacts import NamespaceRegistry
from cli_config import apply_cli_overrides, apply_config, load_config
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from exceptions import (
    ArtifactNSError,
    AttributeMismatchError,
    InvalidCoordinateError,
    ParseError,
    ResolutionError,
    UnsatisfiedRequirementError,
)
from versioning import parse_requirement

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _build(args):
    config = apply_cli_overrides(load_config(getattr(args, "CONFIG", None)), args)
    return apply_config(config, NamespaceRegistry())


def run_resolve(args) -> ExitCodes:
    """Print the resolved full spec for each requested spec."""
    _, search = _build(args)
    for spec in args.SPECS:
        print(search.best_version(spec).to_spec())
    return ExitCodes.SUCCESS


def run_check(args) -> ExitCodes:
    """Print ``VERSION: yes|no`` for each version against the requirement."""
    requirement = parse_requirement(args.REQUIREMENT)
    failed = False
    for version in args.VERSIONS:
        ok = requirement.satisfied_by(version)
        failed = failed or not ok
        print(f"{version}: {'yes' if ok else 'no'}")
    return ExitCodes.UNSATISFIED if failed else ExitCodes.SUCCESS


def run_show(args) -> ExitCodes:
    """Print the artifacts selected in a namespace loaded from the config."""
    registry, _ = _build(args)
    namespace = registry.namespace(args.NAMESPACE)
    for coordinate in namespace.to_a(include_parents=args.PARENTS):
        print(coordinate.to_spec())
    return ExitCodes.SUCCESS


COMMANDS = {
    "resolve": run_resolve,
    "check": run_check,
    "show": run_show,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.command)
        )

    try:
        code = COMMANDS[args.command](args)
    except (OSError, ValueError) as e:
        # ParseError and InvalidCoordinateError are ValueErrors too.
        if isinstance(e, (ParseError, InvalidCoordinateError)):
            logger.error("Invalid input: %s", e)
        else:
            logger.error("Configuration error: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except (UnsatisfiedRequirementError, AttributeMismatchError) as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.UNSATISFIED.value)
    except ResolutionError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)
    except ArtifactNSError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit", component="cli", action=args.command, outcome=code.name.lower()
            )
        )
    sys.exit(code.value)


if __name__ == "__main__":
    main()
