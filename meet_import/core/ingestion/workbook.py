"""
Excel workbook results.

Some meet-management tools hand out the results export as .xlsx instead
of CSV. The first sheet has the same column layout, so we flatten it to
rows of strings and hand it to the same row mapper.
"""

import logging
from datetime import date, datetime
from io import BytesIO
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)


class WorkbookImportError(ValueError):
    """Raised when uploaded bytes can't be read as an .xlsx workbook."""
    pass


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_workbook_rows(data: bytes) -> list[list[str]]:
    """Read the first sheet of a workbook as rows of cell text."""
    if not data:
        raise WorkbookImportError("Workbook file is empty")

    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError) as e:
        raise WorkbookImportError(f"Not a readable .xlsx workbook: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows = []
        for values in sheet.iter_rows(values_only=True):
            cells = [_cell_text(value) for value in values]
            if any(cells):
                rows.append(cells)
    finally:
        workbook.close()

    logger.debug("Read workbook rows", extra={"rows": len(rows)})
    return rows
