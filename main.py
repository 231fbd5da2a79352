#!/usr/bin/env python3
"""
Invoice Import Engine - Main Entry Point.

This is the main entry point for the invoice import engine. It provides
both a command-line interface and programmatic access to the batch
pipeline.

Usage:
    Command Line:
        python main.py --input invoice.txt --output outputs/import.csv
        python main.py --input ./invoices/ --excel --remove-duplicates

    Python:
        from main import run_batch
        result, outputs = run_batch("invoices/")

Exit codes:
    0   batch validated, outputs written
    1   input or configuration failure
    2   validation errors block import
    130 interrupted

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, List

from config import ConfigurationManager
from invoice_engine.utils.logger import setup_logger_from_config, get_logger, LOGGER_NAMESPACE
from invoice_engine.utils.exceptions import InputError, ConfigurationError, DocumentNotFoundError
from invoice_engine.validation import format_validation_results

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_VALIDATION_ERRORS = 2
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list. Defaults to ``sys.argv[1:]``.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Import Engine - extract, validate and export invoices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Process single invoice:
        python main.py --input invoice.txt --output outputs/import.csv

    Process directory with review workbook:
        python main.py --input ./invoices/ --excel

    Parallel extraction, dropping repeated invoices:
        python main.py --input ./invoices/ --workers 4 --remove-duplicates
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input .txt/.json file or directory of them"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output CSV path (default: timestamped file in the output directory)"
    )

    parser.add_argument(
        "--excel",
        action="store_true",
        help="Also write an Excel review workbook"
    )

    parser.add_argument(
        "--no-csv",
        action="store_true",
        help="Disable CSV output"
    )

    # Processing options
    parser.add_argument(
        "--remove-duplicates",
        action="store_true",
        help="Keep only the first copy of repeated invoices"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads for extraction (default: processing.max_workers)"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.

    Raises:
        ConfigurationError: If the configuration file is missing or invalid.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.DEBUG)
        for handler in logger.handlers:
            handler.setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.WARNING)

    logger.info("=" * 60)
    logger.info("INVOICE IMPORT ENGINE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")

    return config


def run_batch(
    input_path: str,
    output_path: Optional[str] = None,
    enable_csv: bool = True,
    enable_excel: bool = False,
    remove_duplicates: bool = False,
    max_workers: Optional[int] = None
):
    """
    Run the import pipeline over a file or directory.

    Outputs are written only when the batch has no blocking errors.

    Args:
        input_path: Path to input file or directory.
        output_path: CSV output path.
        enable_csv: Whether to write the CSV file.
        enable_excel: Whether to write the review workbook.
        remove_duplicates: Drop repeated invoices.
        max_workers: Worker threads for extraction.

    Returns:
        Tuple of (BatchResult, output info dict or None).

    Raises:
        InputError: If the input path is missing or unsupported.

    Example:
        >>> result, outputs = run_batch("invoices/", "outputs/import.csv")
        >>> print(result.validation.is_valid)
    """
    logger = get_logger(__name__)

    from invoice_engine.input_handler import InputHandler
    from invoice_engine.processor import InvoiceBatchProcessor
    from invoice_engine.output_handler import OutputHandler

    if not Path(input_path).exists():
        raise DocumentNotFoundError(str(input_path))

    input_handler = InputHandler()
    files = input_handler.resolve(input_path)
    if not files:
        raise InputError(f"No supported files found in: {input_path}")

    processor = InvoiceBatchProcessor(max_workers=max_workers)
    result = processor.process_sources(
        files,
        input_handler.load,
        remove_duplicates=remove_duplicates
    )

    for error in result.errors:
        logger.error(f"  {error.source_id}: {error.message}")

    if not result.can_export:
        if not result.rows:
            logger.warning("Nothing to export")
        else:
            logger.warning("Validation errors block export; no files written")
        return result, None

    output_handler = OutputHandler(csv_enabled=enable_csv, excel_enabled=enable_excel)
    output_info = output_handler.save(result, output_path)

    if output_info.get('csv_path'):
        logger.info(f"CSV output: {output_info['csv_path']}")
    if output_info.get('excel_path'):
        logger.info(f"Excel output: {output_info['excel_path']}")

    return result, output_info


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (see module docstring).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        result, output_info = run_batch(
            input_path=args.input,
            output_path=args.output,
            enable_csv=not args.no_csv,
            enable_excel=args.excel,
            remove_duplicates=args.remove_duplicates,
            max_workers=args.workers
        )

        if not args.quiet:
            print(format_validation_results(result.validation))

        if result.fatal_error:
            logger.error(f"Batch stopped: {result.fatal_error}")
            return EXIT_FAILURE

        if not result.validation.is_valid:
            return EXIT_VALIDATION_ERRORS

        if not result.records:
            return EXIT_FAILURE

        if output_info and output_info.get('errors'):
            return EXIT_FAILURE

        logger.info("=" * 60)
        logger.info(f"Import ready. Processed {len(result.records)} invoice(s).")
        logger.info("=" * 60)
        return EXIT_OK

    except (InputError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
