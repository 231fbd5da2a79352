"""
CSV Exporter Module.

This module writes canonical import rows to a CSV file (UTF-8 with a
byte-order mark, so spreadsheet tools detect the encoding) together
with a plain-text export log next to it.

Author: ML Engineering Team
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

from config import get_config
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.helpers import ensure_directory, format_file_size, generate_timestamp
from invoice_engine.utils.exceptions import CSVExportError
from .formatter import RecordFormatter, CanonicalRow


@dataclass
class ExportResult:
    """
    Outcome of one CSV export.

    Attributes:
        path: Written CSV file
        row_count: Data rows written (header excluded)
        invoice_count: Distinct invoice numbers in the rows
        file_size: Size of the CSV file in bytes
        log_path: Export log file, if one was written
    """
    path: str
    row_count: int
    invoice_count: int
    file_size: int
    log_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'path': self.path,
            'row_count': self.row_count,
            'invoice_count': self.invoice_count,
            'file_size': self.file_size,
            'log_path': self.log_path
        }


class CSVExporter:
    """
    Exports canonical rows to a CSV file.

    Attributes:
        output_dir: Directory used when no explicit path is given
        filename_prefix: Prefix of generated file names
        write_log: Whether a sibling .log summary is written

    Example:
        >>> exporter = CSVExporter()
        >>> result = exporter.export(rows, "outputs/import.csv")
        >>> print(result.row_count)
    """

    def __init__(
        self,
        formatter: Optional[RecordFormatter] = None,
        write_log: Optional[bool] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        self.formatter = formatter or RecordFormatter()
        self.output_dir = Path(get_config("paths.output_dir", "outputs"))
        self.filename_prefix = get_config("output.csv.filename_prefix", "xero_invoices")
        self.write_log = (
            write_log if write_log is not None
            else get_config("output.csv.write_log", True)
        )
        self.logger = logger or get_logger(__name__)

    def generate_filename(self, prefix: Optional[str] = None) -> str:
        """
        Generate a timestamped CSV file name.

        Example:
            >>> exporter.generate_filename()
            'xero_invoices_20240315_103000.csv'
        """
        return f"{prefix or self.filename_prefix}_{generate_timestamp()}.csv"

    def export(
        self,
        rows: List[CanonicalRow],
        output_path: Optional[Union[str, Path]] = None,
        validation_result=None
    ) -> ExportResult:
        """
        Write rows to a CSV file.

        Args:
            rows: Canonical rows to write.
            output_path: Target file. If None, a timestamped file is
                created in the configured output directory.
            validation_result: Optional ValidationResult summarized in
                the export log.

        Returns:
            ExportResult describing the written file.

        Raises:
            CSVExportError: If the file cannot be written.
        """
        if output_path is None:
            path = self.output_dir / self.generate_filename()
        else:
            path = Path(output_path)

        text = self.formatter.to_csv_text(rows)
        invoice_count = len(self.formatter.group_rows_by_invoice(rows))

        try:
            ensure_directory(path.parent)
            # newline='' keeps the "\n" separators exactly as rendered
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(text)
            file_size = path.stat().st_size
        except OSError as e:
            self.logger.error(f"CSV export failed: {e}")
            raise CSVExportError(str(path), str(e))

        result = ExportResult(
            path=str(path),
            row_count=len(rows),
            invoice_count=invoice_count,
            file_size=file_size
        )

        if self.write_log:
            result.log_path = self._write_log(path, result, validation_result)

        self.logger.info(
            f"CSV saved: {path} ({result.row_count} rows, "
            f"{result.invoice_count} invoices, {format_file_size(file_size)})"
        )
        return result

    def _write_log(self, csv_path: Path, result: ExportResult, validation_result) -> str:
        """Write the export summary next to the CSV file."""
        log_path = csv_path.with_suffix('.log')
        lines = [
            "Invoice CSV Export Log",
            "=" * 40,
            f"Exported: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"File: {csv_path.name}",
            f"Rows: {result.row_count}",
            f"Invoices: {result.invoice_count}",
            f"Size: {format_file_size(result.file_size)}",
        ]

        if validation_result is not None:
            lines.append(f"Errors: {len(validation_result.errors)}")
            lines.append(f"Warnings: {len(validation_result.warnings)}")
            if validation_result.errors:
                lines.append("")
                lines.append("Errors:")
                lines.extend(f"  - {issue}" for issue in validation_result.errors)
            if validation_result.warnings:
                lines.append("")
                lines.append("Warnings:")
                lines.extend(f"  - {issue}" for issue in validation_result.warnings)

        try:
            with open(log_path, 'w', encoding='utf-8') as f:
                f.write("\n".join(lines) + "\n")
        except OSError as e:
            self.logger.error(f"Export log write failed: {e}")
            raise CSVExportError(str(log_path), str(e))

        return str(log_path)
