import csv
import logging
from io import StringIO
from typing import Dict, List

logger = logging.getLogger(__name__)

_QUOTE_CHARS = "\"'"


def _clean_header(cell: str) -> str:
    return cell.strip().strip(_QUOTE_CHARS).strip()


def _is_blank_row(row: List[str]) -> bool:
    return not row or (len(row) == 1 and not row[0].strip())


def decode_csv_bytes(file_content: bytes) -> str:
    """
    Decode delimited text leniently.

    Delimited imports never fail on encoding: undecodable bytes become
    replacement characters and the affected rows fall out at validation.
    """
    return file_content.decode("utf-8-sig", errors="replace")


def process_csv(file_content: bytes, delimiter: str = ",") -> List[Dict[str, str]]:
    """
    Parse delimited text into an ordered list of header -> value rows.

    The first non-blank line is the header. Each data row is zipped
    positionally against it: short rows get ``""`` for the missing columns,
    cells beyond the header width are dropped. Quoted cells may contain the
    delimiter (``"12 Main St, Tyler"`` stays one value).
    Never raises on malformed text: a row the reader cannot tokenise ends the
    parse and the rows read before it are returned.

    Args:
        file_content: CSV file content as bytes
        delimiter: Single-character field separator

    Returns:
        List of rows as dictionaries of string values
    """
    text_content = decode_csv_bytes(file_content)
    # A quote that never closes pulls the rest of the file into one cell
    if csv.field_size_limit() < len(text_content):
        csv.field_size_limit(len(text_content))
    reader = csv.reader(StringIO(text_content), delimiter=delimiter, skipinitialspace=True)

    headers: List[str] = []
    records: List[Dict[str, str]] = []
    short_rows = 0
    long_rows = 0

    try:
        for row in reader:
            if _is_blank_row(row):
                continue
            if not headers:
                headers = [_clean_header(cell) for cell in row]
                continue

            if len(row) < len(headers):
                short_rows += 1
            elif len(row) > len(headers):
                long_rows += 1

            record = {}
            for index, header in enumerate(headers):
                record[header] = row[index].strip() if index < len(row) else ""
            records.append(record)
    except csv.Error as e:
        logger.warning(
            "Stopped reading CSV at line %d (%s); keeping %d rows parsed so far",
            reader.line_num,
            e,
            len(records),
        )

    if short_rows or long_rows:
        logger.info(
            "CSV rows not matching header width: %d short (padded), %d long (truncated)",
            short_rows,
            long_rows,
        )
    logger.info("Processed CSV with %d data rows, columns: %s", len(records), headers)
    return records
