"""
Command-line interface for OpenAPI Fragmenter.
"""

import argparse
import sys
import os
import logging
from pathlib import Path

from . import __version__
from .config import DEFAULT_OUTPUT_DIR, LARGE_INPUT_THRESHOLD
from .coordinator import OperationCoordinator, OutcomeKind
from .errors import FragmenterError
from .tree import write_archive, write_tree
from .validator import YamlValidator


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='openapi-fragmenter',
        description='Split an OpenAPI YAML file into a tree of root, component and path files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s openapi.yaml                    # Write fragments to split_specs/
  %(prog)s openapi.yaml -o my_output       # Custom output directory
  %(prog)s openapi.yaml --zip              # Write split_specs/openapi-split.zip
  %(prog)s openapi.yaml --check            # Only check YAML syntax
  %(prog)s openapi.yaml --format           # Print the canonical formatting
        """
    )

    parser.add_argument(
        'input_file',
        help='Path to the input OpenAPI YAML or JSON file'
    )

    parser.add_argument(
        '-o', '--output',
        default=DEFAULT_OUTPUT_DIR,
        help=f'Output directory for split files (default: {DEFAULT_OUTPUT_DIR})'
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--zip',
        action='store_true',
        help='Write a single ZIP archive instead of separate files'
    )
    mode.add_argument(
        '--check',
        action='store_true',
        help='Validate YAML syntax and exit'
    )
    mode.add_argument(
        '--format',
        action='store_true',
        help='Print the input re-serialized in canonical style and exit'
    )

    parser.add_argument(
        '-y', '--yes',
        action='store_true',
        help=f'Process files larger than {LARGE_INPUT_THRESHOLD // (1024 * 1024)}MB without asking'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def confirm_large_file(size: int) -> bool:
    """Ask on stdin whether to continue with a large file."""
    try:
        answer = input(f"File is large ({size / 1024 / 1024:.2f}MB). Continue? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ('y', 'yes')


def check_file(input_file: str) -> int:
    """
    Validate a file and print ``file:line:column: message`` diagnostics.

    Returns:
        Exit code
    """
    text = Path(input_file).read_text(encoding='utf-8')
    state = YamlValidator().validate(text)
    if state.is_valid:
        print(f"{input_file}: OK")
        return 0
    for error in state.errors:
        print(f"{input_file}:{error.line}:{error.column}: {error.message}", file=sys.stderr)
    return 1


def main(argv=None):
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    # Validate input file exists
    if not os.path.exists(args.input_file):
        print(f"Error: Input file '{args.input_file}' not found", file=sys.stderr)
        sys.exit(1)

    try:
        if args.check:
            sys.exit(check_file(args.input_file))

        if args.format:
            text = Path(args.input_file).read_text(encoding='utf-8')
            sys.stdout.write(YamlValidator().format(text))
            return

        confirm = (lambda size: True) if args.yes else confirm_large_file
        coordinator = OperationCoordinator(confirm_large_input=confirm)

        print(f"Splitting {args.input_file}")
        outcome = coordinator.request_upload(Path(args.input_file).read_bytes())

        if outcome.kind is OutcomeKind.DECLINED:
            print("Aborted.")
            sys.exit(1)
        if not outcome.ok:
            for error in coordinator.store.snapshot().validation.errors:
                print(f"{args.input_file}:{error.line}:{error.column}: {error.message}", file=sys.stderr)
            logger.error(f"Error: {outcome.message}")
            sys.exit(1)

        # Report results
        if args.zip:
            archive = write_archive(outcome.tree, args.output)
            print(f"Split complete. Archive written to: {archive}")
        else:
            created_files = write_tree(outcome.tree, args.output)
            print(f"Split complete. Output files in: {args.output}")
            for filepath in created_files:
                print(f"Created: {filepath}")

    except FragmenterError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
