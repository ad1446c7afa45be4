import csv
import logging
from typing import Iterator, List, Optional, Sequence

from config import LedgerSettings
from models import Transaction, ClientAccount, ProcessingResult, ProcessingStats, TransactionParseError
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    Replays a CSV transaction log into final account states.
    Rows are processed strictly in file order, one at a time.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._processor = TransactionProcessor(settings)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> List[ClientAccount]:
        """Process CSV file and return final account states.

        An input file that cannot be opened raises OSError; one that is not
        valid UTF-8 raises UnicodeDecodeError. A row the csv module rejects
        is dropped like any other unparsable row.
        """
        logger.info(f"Replaying {filepath}")
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            rows = self._read_rows(csv.reader(f))
            next(rows, None)  # header
            for row in rows:
                self.process_row(row)

        return self.snapshot()

    def _read_rows(self, reader) -> Iterator[List[str]]:
        while True:
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                self._stats.record_parse_failure()
                logger.warning(f"Failed to parse line {reader.line_num}: {e}")
                continue
            yield row

    def process_row(self, row: Sequence[str]) -> Optional[ProcessingResult]:
        """Parse one data row and apply it. Returns None if the row was dropped."""
        try:
            transaction = Transaction.from_fields(row)
        except TransactionParseError as e:
            self._stats.record_parse_failure()
            logger.warning(f"Failed to parse row {list(row)}: {e}")
            return None

        if not transaction.is_valid():
            self._stats.record_invalid()
            logger.warning(f"Dropping {transaction}: {transaction.transaction_type.value} without an amount")
            return None

        result = self._processor.process_transaction(transaction)
        self._stats.record_result(result)
        return result

    def snapshot(self) -> List[ClientAccount]:
        return self._processor.snapshot()
