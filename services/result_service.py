from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional
from urllib.parse import urlsplit
import logging

import config
from portal.exceptions import InvalidInputError, ResultLookupError
from portal.models import StudentRecord, format_roll_number, is_valid_roll_number
from portal.parser import ResultParser
from portal.result_client import ResultClient

logger = logging.getLogger(__name__)


def validate_htno(htno: Any, field_name: str = "htno") -> str:
    if htno is None or htno == "":
        raise InvalidInputError(f"Missing required field: {field_name}")
    if not is_valid_roll_number(htno):
        raise InvalidInputError("Hall ticket number must be exactly 12 digits")
    return htno


def validate_url(url: Any) -> str:
    if url is None or url == "":
        raise InvalidInputError("Missing required field: url")
    if not isinstance(url, str):
        raise InvalidInputError("Invalid URL format")

    try:
        parts = urlsplit(url.strip())
        # .port raises on garbage like "host:abc"
        parts.port
    except ValueError:
        raise InvalidInputError("Invalid URL format")

    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidInputError("Invalid URL format")
    return url.strip()


def roll_range(start: str, end: str) -> Iterator[str]:
    """Inclusive, ascending, re-padded to 12 digits."""
    first, last = int(start), int(end)
    if first > last:
        raise InvalidInputError("Start roll number must not be greater than the end roll number")
    for number in range(first, last + 1):
        yield format_roll_number(number)


@dataclass
class RangeFetchResult:
    records: List[StudentRecord] = field(default_factory=list)
    failed_htno: Optional[str] = None
    error: Optional[ResultLookupError] = None

    @property
    def complete(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        error = None
        if self.error is not None:
            error = {
                "kind": self.error.kind,
                "message": f"Failed to fetch results for roll number {self.failed_htno}: {self.error.message}",
                "htno": self.failed_htno,
            }
        return {
            "data": [r.to_dict() for r in self.records],
            "complete": self.complete,
            "error": error,
        }


class ResultService:
    def __init__(
        self,
        client: Optional[ResultClient] = None,
        parser: Optional[ResultParser] = None,
        max_range_size: int = config.MAX_RANGE_SIZE,
    ):
        self.client = client or ResultClient()
        self.parser = parser or ResultParser()
        self.max_range_size = max_range_size

    def fetch_result(self, url: str, htno: str) -> StudentRecord:
        url = validate_url(url)
        htno = validate_htno(htno)
        return self._lookup(url, htno)

    def fetch_range(
        self,
        url: str,
        start_htno: str,
        end_htno: str,
        on_record: Optional[Callable[[StudentRecord], None]] = None,
    ) -> RangeFetchResult:
        """
        Looks up every roll number between start and end, one at a time.
        Stops at the first hard failure and hands back what was gathered so far;
        NOT_FOUND records don't count as failures.
        """
        url = validate_url(url)
        start_htno = validate_htno(start_htno, "startHtno")
        end_htno = validate_htno(end_htno, "endHtno")

        size = int(end_htno) - int(start_htno) + 1
        if size < 1:
            raise InvalidInputError("Start roll number must not be greater than the end roll number")
        if size > self.max_range_size:
            raise InvalidInputError(f"Range too large: {size} roll numbers (max {self.max_range_size})")

        logger.info(f"🚀 Fetching {size} results from {start_htno} to {end_htno}")
        outcome = RangeFetchResult()

        for htno in roll_range(start_htno, end_htno):
            try:
                record = self._lookup(url, htno)
            except ResultLookupError as e:
                e.htno = e.htno or htno
                outcome.failed_htno = htno
                outcome.error = e
                logger.error(f"❌ Stopping range at {htno} after {len(outcome.records)} records: {e}")
                break

            outcome.records.append(record)
            if on_record is not None:
                on_record(record)

        if outcome.complete:
            logger.info(f"✅ Range complete: {len(outcome.records)} records")
        return outcome

    def _lookup(self, url: str, htno: str) -> StudentRecord:
        html = self.client.fetch(url, htno)
        try:
            return self.parser.parse_result(html, htno)
        except ResultLookupError as e:
            e.htno = e.htno or htno
            raise
