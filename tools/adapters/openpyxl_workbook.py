"""Workbook reader adapter using openpyxl."""

import io
import os
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from domain.exceptions import ParseError
from domain.ports import WorkbookReaderPort


class OpenpyxlWorkbookReader(WorkbookReaderPort):
    """Loads every worksheet of an .xlsx file into a list of row lists.

    Formulas are read as their cached values, so the workbook must have been
    saved by a spreadsheet application at least once.
    """

    def read(self, source) -> dict[str, list[list]]:
        """Read *source* (path, bytes or binary file object) into ``{sheet: rows}``."""
        is_path = isinstance(source, (str, os.PathLike))
        label = str(source) if is_path else type(source).__name__
        if is_path and not os.path.isfile(source):
            raise ParseError(f"Workbook not found: {label}", {"source": label})
        handle = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        try:
            workbook = load_workbook(handle, read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
            raise ParseError(f"Workbook could not be read: {e}", {"source": label}) from e

        try:
            sheets = {}
            for worksheet in workbook.worksheets:
                sheets[worksheet.title] = [
                    list(row) for row in worksheet.iter_rows(values_only=True)
                ]
            return sheets
        finally:
            workbook.close()
