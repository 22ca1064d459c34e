# backend/linklian/services/imports/spreadsheet.py
"""
Reads uploaded spreadsheets (CSV, .xlsx or legacy .xls) into plain row dictionaries.

Every cell is read as text: headers are kept in file order, values are
stripped and empty cells become ``""``. Only the first sheet of a workbook is
read. The resulting list is exactly what the validation token hashes, so the
same bytes always produce the same rows.
"""

import io
import zipfile
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import chardet
import pandas as pd
from xlrd.biffh import XLRDError
from xlrd.compdoc import CompDocError

from ...core.exceptions import SpreadsheetError

logger = logging.getLogger(__name__)

# pandas engine per workbook format
EXCEL_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}
EXCEL_EXTENSIONS = tuple(EXCEL_ENGINES)


def detect_encoding(content: bytes) -> str:
    """Guess the text encoding of CSV bytes, defaulting to utf-8."""
    if content.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    result = chardet.detect(content[:100_000])
    encoding = result.get("encoding") or "utf-8"
    confidence = result.get("confidence") or 0
    logger.debug(f"Detected encoding: {encoding} (confidence: {confidence:.2f})")
    # ascii is a subset of utf-8; low-confidence guesses on Thai text are unreliable
    if encoding.lower() == "ascii" or confidence < 0.5:
        return "utf-8"
    return encoding


def _clean_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    # pandas names blank header cells "Unnamed: N"; drop fully empty ones
    unnamed = [
        c for c in df.columns if c.startswith("Unnamed:") and (df[c] == "").all()
    ]
    if unnamed:
        df = df.drop(columns=unnamed)

    records: List[Dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        row = {
            key: value.strip() if isinstance(value, str) else ("" if value is None else value)
            for key, value in record.items()
        }
        # skip fully blank lines
        if any(v != "" for v in row.values()):
            records.append(row)
    return records


def parse_spreadsheet(
    content: Optional[bytes],
    filename: Optional[str] = None,
    allowed_extensions: Sequence[str] = (".csv",) + EXCEL_EXTENSIONS,
) -> List[Dict[str, Any]]:
    """
    Parse an uploaded file into a list of ``{header: value}`` records.

    Raises:
        SpreadsheetError: no file, unsupported extension, or unreadable content.
    """
    if not content:
        raise SpreadsheetError("No file uploaded")

    extension = Path(filename or "").suffix.lower() or ".xlsx"
    if extension not in allowed_extensions:
        raise SpreadsheetError(
            f"Unsupported file type '{extension}'",
            details={"allowed_extensions": list(allowed_extensions)},
        )

    try:
        if extension in EXCEL_EXTENSIONS:
            df = pd.read_excel(
                io.BytesIO(content),
                sheet_name=0,
                engine=EXCEL_ENGINES[extension],
                dtype=str,
                keep_default_na=False,
            )
        else:
            df = pd.read_csv(
                io.BytesIO(content),
                encoding=detect_encoding(content),
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
            )
    except pd.errors.EmptyDataError:
        logger.info(f"Uploaded file {filename!r} is empty")
        return []
    except (
        pd.errors.ParserError,
        ValueError,
        UnicodeDecodeError,
        zipfile.BadZipFile,
        XLRDError,
        CompDocError,
    ) as e:
        logger.warning(f"Could not parse uploaded file {filename!r}: {e}")
        raise SpreadsheetError(f"Could not read spreadsheet: {e}", cause=e) from e

    rows = _clean_frame(df)
    logger.info(f"Parsed {len(rows)} rows from {filename or 'upload'}")
    return rows
