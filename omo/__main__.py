"""
Main CLI entry point for OMO Switch.

Provides single-shot subcommands over the configuration synchronization engine.
"""

import argparse
import sys
from pathlib import Path

from omo.logging import LOG_LEVELS, configure_logging_from_args, get_logger
from omo.models import VARIANTS


def build_parser() -> argparse.ArgumentParser:
    """
    Build the main argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="omo",
        description="OMO Switch - manage model assignments for agents and categories",
        epilog="Use 'omo <command> --help' for more information on a specific command.",
    )

    # Global flags (available to all commands)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings file (default: omo.yaml/omo.json in the global folder)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    parser.add_argument(
        "--log-level",
        choices=list(LOG_LEVELS),
        help="Set logging level (overrides --verbose)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
        required=True,
    )

    subparsers.add_parser(
        "status",
        help="Load configuration, model catalog and versions",
    )
    subparsers.add_parser(
        "check",
        help="Check the configuration file for external changes",
    )

    # -------------------------------------------------------------------------
    # Resolve subcommand
    # -------------------------------------------------------------------------
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve external changes to the configuration file",
    )
    resolve_subparsers = resolve_parser.add_subparsers(
        dest="resolve_command",
        title="resolutions",
        required=True,
    )
    resolve_subparsers.add_parser("cache", help="Restore the last saved configuration")
    resolve_subparsers.add_parser("preset", help="Reload the active preset")
    resolve_subparsers.add_parser("accept", help="Accept the file as it is now")

    # -------------------------------------------------------------------------
    # Preset subcommand
    # -------------------------------------------------------------------------
    preset_parser = subparsers.add_parser(
        "preset",
        help="Manage presets",
    )
    preset_subparsers = preset_parser.add_subparsers(
        dest="preset_command",
        title="preset commands",
        required=True,
    )
    preset_subparsers.add_parser("list", help="List presets")
    save_parser = preset_subparsers.add_parser("save", help="Save the configuration as a new preset")
    save_parser.add_argument("name")
    load_parser = preset_subparsers.add_parser("load", help="Load a preset")
    load_parser.add_argument("name")
    delete_parser = preset_subparsers.add_parser("delete", help="Delete one or more presets")
    delete_parser.add_argument("names", nargs="+")
    rename_parser = preset_subparsers.add_parser("rename", help="Rename a preset")
    rename_parser.add_argument("old_name")
    rename_parser.add_argument("new_name")
    preset_subparsers.add_parser("default", help="Switch to the default configuration")

    # -------------------------------------------------------------------------
    # Assign subcommand
    # -------------------------------------------------------------------------
    assign_parser = subparsers.add_parser(
        "assign",
        help="Assign a model to an agent or category",
    )
    assign_parser.add_argument("assign_command", choices=["agent", "category"])
    assign_parser.add_argument("name")
    assign_parser.add_argument("model", help="Model id as provider/model")
    assign_parser.add_argument(
        "--variant",
        choices=list(VARIANTS),
        default=None,
        help="Reasoning variant ('none' clears it)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the OMO CLI.

    Args:
        argv: Command-line arguments (for testing)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging_from_args(
        verbose=args.verbose,
        log_level=args.log_level,
        log_file=str(args.log_file) if args.log_file else None,
    )

    logger = get_logger(__name__)
    logger.debug(f"Parsed arguments: {args}")

    from omo.cli import load_settings, run_command

    try:
        settings = load_settings(args.config)
    except FileNotFoundError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        print("Create a settings file or use --config to specify a different path.")
        return 1
    except ValueError as e:
        logger.error(f"Invalid settings: {e}")
        print(f"Error: Invalid settings: {e}")
        return 1

    if not args.log_level and not args.verbose and settings.log_level != "INFO":
        configure_logging_from_args(
            log_file=str(args.log_file) if args.log_file else None,
            default_level=settings.log_level,
        )

    try:
        logger.info(f"Starting {args.command} command")
        return run_command(args, settings)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        print("\nInterrupted by user.")
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.exception("Unhandled exception in main")
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
