"""
Main Output Handler Module.

This module provides the unified OutputHandler class that coordinates
all output operations (CSV import file and Excel review workbook).

Author: ML Engineering Team
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Any, Union

from config import get_config
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.exceptions import OutputError
from .csv_exporter import CSVExporter
from .excel_exporter import ExcelExporter


class OutputHandler:
    """
    Unified output handler for batch results.

    Coordinates output to the CSV import file and the Excel review
    workbook. Can be configured to use one or both.

    Attributes:
        csv_enabled: Whether CSV export is enabled
        excel_enabled: Whether Excel export is enabled

    Example:
        >>> handler = OutputHandler(excel_enabled=True)
        >>> info = handler.save(batch_result, "outputs/import.csv")
        >>> print(info['csv_path'], info['excel_path'])
    """

    def __init__(
        self,
        csv_enabled: Optional[bool] = None,
        excel_enabled: Optional[bool] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        """
        Initialize the output handler.

        Args:
            csv_enabled: Override config for CSV output.
            excel_enabled: Override config for Excel output.
            logger: Logger passed on to the exporters.
        """
        self.csv_enabled = csv_enabled if csv_enabled is not None else \
            get_config("output.csv.enabled", True)
        self.excel_enabled = excel_enabled if excel_enabled is not None else \
            get_config("output.excel.enabled", False)
        self.logger = logger or get_logger(__name__)

        # Exporters are created on first use
        self._csv_exporter = None
        self._excel_exporter = None

        self.logger.debug(
            f"OutputHandler initialized (csv={self.csv_enabled}, excel={self.excel_enabled})"
        )

    @property
    def csv_exporter(self) -> CSVExporter:
        """Get or create the CSV exporter."""
        if self._csv_exporter is None:
            self._csv_exporter = CSVExporter(logger=self.logger)
        return self._csv_exporter

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter(logger=self.logger)
        return self._excel_exporter

    def save(
        self,
        batch_result,
        output_path: Optional[Union[str, Path]] = None
    ) -> Dict[str, Any]:
        """
        Save a batch result to all enabled outputs.

        A failure in one output is logged and reported; it does not stop
        the other output.

        Args:
            batch_result: BatchResult from the processor.
            output_path: CSV path. The workbook is written next to it
                with an .xlsx suffix. If None, names are generated.

        Returns:
            Dictionary with output details:
            {
                'csv_path': 'path/to/file.csv',
                'log_path': 'path/to/file.log',
                'excel_path': 'path/to/file.xlsx',
                'errors': ['...']
            }
        """
        output_info = {
            'csv_path': None,
            'log_path': None,
            'excel_path': None,
            'errors': []
        }

        if self.csv_enabled:
            try:
                export = self.to_csv(batch_result, output_path)
                output_info['csv_path'] = export.path
                output_info['log_path'] = export.log_path
            except OutputError as e:
                self.logger.error(f"CSV export failed: {e}")
                output_info['errors'].append(str(e))

        if self.excel_enabled:
            excel_path = Path(output_path).with_suffix('.xlsx') if output_path else None
            try:
                output_info['excel_path'] = self.to_excel(batch_result, excel_path)
            except OutputError as e:
                self.logger.error(f"Excel export failed: {e}")
                output_info['errors'].append(str(e))

        return output_info

    def to_csv(self, batch_result, output_path: Optional[Union[str, Path]] = None):
        """
        Export a batch to CSV.

        Returns:
            ExportResult of the written file.
        """
        return self.csv_exporter.export(
            batch_result.rows,
            output_path,
            validation_result=batch_result.validation
        )

    def to_excel(self, batch_result, output_path: Optional[Union[str, Path]] = None) -> str:
        """
        Export a batch to the review workbook.

        Returns:
            Path to created Excel file.
        """
        return self.excel_exporter.export(
            batch_result.rows,
            output_path,
            validation_result=batch_result.validation,
            amount_verification=batch_result.amount_verification
        )
