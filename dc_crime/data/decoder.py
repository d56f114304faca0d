"""
Table decoder for the MPD "Crime Incidents" CSV extract.

The extract is comma delimited with optional double-quote wrapping. Rows are
decoded with a quote-aware scanner so that a block address like
"123, Main St" stays one field, short rows are padded and rows that decode to
more fields than the header are dropped with a warning.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import pandas as pd

from dc_crime.utils.logger_config import setup_logger
from dc_crime.utils.exceptions import DataLoadError

logger = setup_logger(__name__)

REQUIRED_COLUMNS: Tuple[str, ...] = ('LATITUDE', 'LONGITUDE')

_LINE_BREAKS = re.compile(r'\r\n|\r|\n')


@dataclass
class DecodeResult:
    """
    Output of decode_table

    Attributes:
    frame (pd.DataFrame): One row per decoded record, every column a string
    dropped_rows (list): 1-based line numbers (header is line 1) of rows dropped as corrupt
    """
    frame: pd.DataFrame
    dropped_rows: List[int] = field(default_factory=list)

    @property
    def columns(self) -> List[str]:
        return list(self.frame.columns)


def split_row(row: str, delimiter: str = ',', quotechar: str = '"') -> List[str]:
    """
    Split one line into fields, honouring quotes

    The quote character toggles a quoted state and is never copied into the
    field; the delimiter only separates fields outside quotes. Each field is
    stripped of surrounding whitespace.

    Args:
    row (str): A single line without its line break
    delimiter (str): Field separator
    quotechar (str): Quote character

    Returns:
    list: The decoded fields
    """
    values = []
    current = []
    in_quotes = False

    for char in row:
        if char == quotechar:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append(''.join(current).strip())
            current = []
        else:
            current.append(char)

    values.append(''.join(current).strip())
    return values


def _split_header(line: str, delimiter: str, quotechar: str) -> List[str]:
    return [name.strip().strip(quotechar).strip() for name in line.split(delimiter)]


def decode_table(
    text: str,
    delimiter: str = ',',
    quotechar: str = '"',
    required_columns: Sequence[str] = REQUIRED_COLUMNS,
) -> DecodeResult:
    """
    Decode raw delimited text into a frame of string fields

    Args:
    text (str): Raw file contents
    delimiter (str): Field separator. Defaults to ','
    quotechar (str): Quote character. Defaults to '"'
    required_columns (Sequence[str]): Header names that must be present

    Returns:
    DecodeResult: Decoded frame plus the line numbers of dropped rows

    Raises:
    DataLoadError: Fewer than 2 non-blank lines, a required column is missing or a column is repeated
    """
    if not text or not text.strip():
        raise DataLoadError('Incident extract is empty')

    # Keep the original line numbers so dropped rows can be reported
    lines = [
        (number, line)
        for number, line in enumerate(_LINE_BREAKS.split(text.lstrip('\ufeff')), start=1)
        if line.strip()
    ]
    if len(lines) < 2:
        raise DataLoadError(f'Incident extract has insufficient data: {len(lines)} non-blank line(s)')

    headers = _split_header(lines[0][1], delimiter, quotechar)
    missing = [col for col in required_columns if col not in headers]
    if missing:
        raise DataLoadError(f'Incident extract is missing required columns: {missing}')
    duplicated = sorted({col for col in headers if headers.count(col) > 1})
    if duplicated:
        raise DataLoadError(f'Incident extract has duplicate columns: {duplicated}')

    width = len(headers)
    rows = []
    dropped = []
    padded = 0

    for number, line in lines[1:]:
        values = split_row(line, delimiter, quotechar)
        if len(values) > width:
            logger.warning(f'Row {number} has mismatched columns. Expected {width}, got {len(values)}')
            dropped.append(number)
            continue
        if len(values) < width:
            values.extend([''] * (width - len(values)))
            padded += 1
        rows.append(values)

    frame = pd.DataFrame(rows, columns=headers, dtype=object)

    logger.debug(f'Decoded {len(frame)} rows ({padded} padded, {len(dropped)} dropped)')
    if dropped:
        logger.warning(f'Dropped {len(dropped)} corrupt rows while decoding')

    return DecodeResult(frame=frame, dropped_rows=dropped)


def read_incident_table(path: Union[str, Path], encoding: str = 'utf-8') -> DecodeResult:
    """
    Read and decode the incident extract from disk

    Args:
    path (str | Path): Location of the CSV file
    encoding (str): File encoding. Defaults to 'utf-8'

    Returns:
    DecodeResult: Decoded rows

    Raises:
    DataLoadError: The file is missing, unreadable or fails to decode
    """
    path = Path(path)
    logger.info(f'Loading incident extract from {path}')

    if not path.is_file():
        raise DataLoadError(f'Incident extract not found: {path}')

    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f'Error in Loading {path} : {str(e)}')
        raise DataLoadError(f'Error in Loading {path} : {str(e)}')

    return decode_table(text)
