"""
Two-phase import orchestration.

``ImportPipeline.process`` parses an uploaded file, classifies and
normalizes every row into typed buckets and stages the result together
with a human-readable summary. Nothing is persisted until the user confirms
with ``ImportPipeline.commit``, which writes the buckets to the durable cache
and hands them to the caller-supplied import callback.
"""
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from prospect_crm.core.config import settings
from prospect_crm.domain.entities import Outreach, Price, Prospect, RecordKind
from .classifier import classify_record
from .errors import ImportDecodeError, NothingStagedError, UnsupportedFileTypeError
from .mapper import normalize_outreach, normalize_price, normalize_prospect
from .processors.csv_processor import process_csv
from .processors.json_processor import process_json

logger = logging.getLogger(__name__)

COMMIT_CONFIRMATION = "Data imported and saved successfully!"

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}
JSON_CONTENT_TYPES = {"application/json", "text/json"}

_NORMALIZERS: Dict[RecordKind, Callable[[Mapping[str, Any]], Any]] = {
    RecordKind.PROSPECT: normalize_prospect,
    RecordKind.PRICE: normalize_price,
    RecordKind.OUTREACH: normalize_outreach,
}

_SECTION_KINDS = {
    "prospects": RecordKind.PROSPECT,
    "prices": RecordKind.PRICE,
    "outreach": RecordKind.OUTREACH,
}

ImportCallback = Callable[
    [List[Prospect], List[Price], List[Outreach]],
    Union[Awaitable[None], None],
]


@dataclass
class ImportBuckets:
    """Validated records accumulated during one import pass."""
    prospects: List[Prospect] = field(default_factory=list)
    prices: List[Price] = field(default_factory=list)
    outreach: List[Outreach] = field(default_factory=list)

    def add(self, kind: RecordKind, record: Any) -> None:
        if kind is RecordKind.PROSPECT:
            self.prospects.append(record)
        elif kind is RecordKind.PRICE:
            self.prices.append(record)
        else:
            self.outreach.append(record)

    @property
    def counts(self) -> Tuple[int, int, int]:
        return len(self.prospects), len(self.prices), len(self.outreach)


@dataclass
class ImportStats:
    """Row accounting for one import pass. Skips are never surfaced per row."""
    input_rows: int = 0
    unclassified_rows: int = 0
    rejected_rows: int = 0

    @property
    def accepted_rows(self) -> int:
        return self.input_rows - self.unclassified_rows - self.rejected_rows

    def to_dict(self) -> Dict[str, int]:
        return {
            "input_rows": self.input_rows,
            "accepted_rows": self.accepted_rows,
            "unclassified_rows": self.unclassified_rows,
            "rejected_rows": self.rejected_rows,
        }


@dataclass
class ImportResult:
    success: bool
    message: str
    data: Optional[ImportBuckets] = None
    stats: Optional[ImportStats] = None
    file_name: Optional[str] = None
    # Cached prices as they stood before the first commit attempt
    prior_prices: Optional[List[Price]] = None


def detect_file_type(filename: str, content_type: Optional[str] = None) -> str:
    """
    Decide which parser handles an upload, by extension first, then content type.

    Raises:
        UnsupportedFileTypeError: Neither CSV nor JSON
    """
    name = (filename or "").lower()
    if name.endswith(".csv"):
        return "csv"
    if name.endswith(".json"):
        return "json"

    media_type = (content_type or "").split(";")[0].strip().lower()
    if media_type in CSV_CONTENT_TYPES:
        return "csv"
    if media_type in JSON_CONTENT_TYPES:
        return "json"

    raise UnsupportedFileTypeError(filename)


def build_summary(buckets: ImportBuckets) -> str:
    prospects, prices, outreach = buckets.counts
    return (
        f"Successfully imported {prospects} prospects, {prices} prices, "
        f"and {outreach} outreach records."
    )


def _normalize_into(
    buckets: ImportBuckets,
    stats: ImportStats,
    kind: RecordKind,
    row: Mapping[str, Any],
) -> None:
    record = _NORMALIZERS[kind](row)
    if record is None:
        stats.rejected_rows += 1
        return
    buckets.add(kind, record)


def bucket_flat_rows(
    rows: List[Mapping[str, Any]],
    buckets: ImportBuckets,
    stats: ImportStats,
) -> None:
    """Classify each row and normalize it into the matching bucket."""
    for row in rows:
        stats.input_rows += 1
        kind = classify_record(row)
        if kind is None:
            stats.unclassified_rows += 1
            continue
        _normalize_into(buckets, stats, kind, row)


def bucket_sections(
    sections: Mapping[str, List[Mapping[str, Any]]],
    buckets: ImportBuckets,
    stats: ImportStats,
) -> None:
    """Normalize pre-sorted JSON sections without reclassifying them."""
    for section, kind in _SECTION_KINDS.items():
        for row in sections.get(section, []):
            stats.input_rows += 1
            _normalize_into(buckets, stats, kind, row)


def process_file_content(
    file_content: bytes,
    file_type: str,
    *,
    delimiter: str = ",",
) -> Tuple[ImportBuckets, ImportStats]:
    """
    Parse, classify and normalize a whole file.

    Args:
        file_content: Raw upload bytes
        file_type: ``"csv"`` or ``"json"`` (see ``detect_file_type``)
        delimiter: Field separator for delimited text

    Returns:
        Tuple of (buckets, stats)

    Raises:
        ImportDecodeError: Structured text could not be decoded
    """
    buckets = ImportBuckets()
    stats = ImportStats()

    if file_type == "csv":
        bucket_flat_rows(process_csv(file_content, delimiter=delimiter), buckets, stats)
    elif file_type == "json":
        parsed = process_json(file_content)
        if "records" in parsed:
            bucket_flat_rows(parsed["records"], buckets, stats)
        else:
            bucket_sections(parsed, buckets, stats)
    else:
        raise ValueError(f"Unsupported file type: {file_type}")

    return buckets, stats


class ImportPipeline:
    """
    Stages one processed file at a time and commits it on request.

    The pipeline is created once at startup with the durable cache it writes
    to. ``staged`` holds the latest successful result so the caller can show
    it until the user commits or discards.
    """

    def __init__(self, cache, *, delimiter: Optional[str] = None):
        self.cache = cache
        self.delimiter = delimiter or settings.csv_delimiter
        self.staged: Optional[ImportResult] = None

    def process(
        self,
        file_content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> ImportResult:
        """
        Run the process phase and stage its result.

        A decode failure returns a failed result carrying the error message
        and leaves nothing staged. Unsupported file types raise
        ``UnsupportedFileTypeError`` before anything is read.
        """
        file_type = detect_file_type(filename, content_type)
        self.staged = None

        try:
            buckets, stats = process_file_content(file_content, file_type, delimiter=self.delimiter)
        except ImportDecodeError as e:
            logger.warning("Import of '%s' failed to decode: %s", filename, e.message)
            return ImportResult(
                success=False,
                message=f"Error processing file: {e.message}",
                file_name=filename,
            )

        logger.info(
            "Processed '%s' (%s): %d prospects, %d prices, %d outreach; %d unclassified, %d rejected of %d rows",
            filename,
            file_type,
            *buckets.counts,
            stats.unclassified_rows,
            stats.rejected_rows,
            stats.input_rows,
        )

        result = ImportResult(
            success=True,
            message=build_summary(buckets),
            data=buckets,
            stats=stats,
            file_name=filename,
        )
        self.staged = result
        return result

    async def commit(self, on_imported: ImportCallback) -> ImportResult:
        """
        Persist the staged buckets and notify ``on_imported``.

        Cache writes happen before the callback and are not rolled back when
        it raises; the exception propagates and the staged result is kept so
        the user can retry.

        Raises:
            NothingStagedError: No successful process result is staged
        """
        staged = self.staged
        if staged is None or not staged.success or staged.data is None:
            raise NothingStagedError()

        data = staged.data
        # Snapshot before the writes below replace the cached price list
        self.prior_prices()
        self.cache.save_prospects(data.prospects)
        self.cache.save_prices(data.prices)
        self.cache.save_outreach(data.outreach)

        outcome = on_imported(data.prospects, data.prices, data.outreach)
        if inspect.isawaitable(outcome):
            await outcome

        logger.info("Committed import of '%s' (%d/%d/%d)", staged.file_name, *data.counts)
        self.staged = ImportResult(success=True, message=COMMIT_CONFIRMATION, file_name=staged.file_name)
        return self.staged

    def prior_prices(self) -> List[Price]:
        """
        Prices cached before the staged import touched the cache.

        Read once per staged import and reused on every commit retry, since
        a failed commit has already overwritten the cached price list.
        """
        staged = self.staged
        if staged is None or staged.data is None:
            return self.cache.load_prices() or []
        if staged.prior_prices is None:
            staged.prior_prices = self.cache.load_prices() or []
        return staged.prior_prices

    def discard(self) -> None:
        self.staged = None
