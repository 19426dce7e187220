"""
Record sources: where the items to load come from.

A source is any iterable of (Record, domain_index) pairs. Two are
provided: a synthetic generator for speed tests and a parser for
tab-separated key / JSON-object files.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Tuple

from .config import ERR_MALFORMED_LINE
from .logger import get_logger
from .partition import avalanche_hash, domain_for_id, domain_for_key, to_int32
from .records import Record


class SyntheticSource:
    """
    Deterministic test items.

    Ids are hashed from the sequence index so that consecutive items are
    scattered over the domains instead of filling one buffer at a time.
    """

    THIRD_VALUE = "{a:'foo', b:'bar'}"
    FOURTH_VALUE = "[10,9,8,7,6,5,4,3,2,1]"

    def __init__(self, item_count: int, domain_count: int):
        self.item_count = item_count
        self.domain_count = domain_count

    def __len__(self) -> int:
        return self.item_count

    def __iter__(self) -> Iterator[Tuple[Record, int]]:
        for index in range(self.item_count):
            item_id = avalanche_hash(index)
            record = Record(str(item_id))
            record.add("first", str(item_id))
            record.add("second", str(to_int32(item_id * 2)))
            record.add("third", self.THIRD_VALUE)
            record.add("fourth", self.FOURTH_VALUE)
            yield record, domain_for_id(item_id, self.domain_count)


@dataclass
class SourceStats:
    """Statistics from reading a delimited file."""
    lines_read: int = 0
    empty_lines: int = 0
    malformed_lines: int = 0
    records: int = 0


class DelimitedFileSource:
    """
    One record per line: key, delimiter, JSON object.

    Each member of the object becomes an attribute. String values are
    stored as-is, anything else as its JSON text; long values are
    chunked. A line whose value is missing or is not a JSON object is
    still loaded, with no attributes.
    """

    def __init__(self, path, domain_count: int, delimiter: str = "\t"):
        self.path = Path(path)
        self.domain_count = domain_count
        self.delimiter = delimiter
        self.stats = SourceStats()
        self.logger = get_logger()

    def __iter__(self) -> Iterator[Tuple[Record, int]]:
        self.stats = SourceStats()
        # Decoded per line so one bad byte sequence costs only its own line
        with open(self.path, "rb") as handle:
            for line_number, raw in enumerate(handle, start=1):
                self.stats.lines_read += 1
                try:
                    line = raw.decode("utf-8")
                    decode_error = None
                except UnicodeDecodeError as e:
                    line = raw.decode("utf-8", errors="replace")
                    decode_error = e

                line = line.rstrip("\r\n")
                if not line.strip():
                    self.stats.empty_lines += 1
                    continue

                if decode_error is None:
                    record = self.parse_line(line, line_number)
                else:
                    record = self._undecodable_line(line, line_number, decode_error)
                self.stats.records += 1
                yield record, domain_for_key(record.item_name, self.domain_count)

    def _undecodable_line(self, line: str, line_number: int, error: UnicodeDecodeError) -> Record:
        key, _, _ = line.partition(self.delimiter)
        self.stats.malformed_lines += 1
        self.logger.warning(ERR_MALFORMED_LINE, line=line_number, key=key, error=str(error))
        return Record(key)

    def parse_line(self, line: str, line_number: int = 0) -> Record:
        key, _, blob = line.partition(self.delimiter)
        record = Record(key)

        try:
            data = json.loads(blob)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except ValueError as e:
            self.stats.malformed_lines += 1
            self.logger.warning(ERR_MALFORMED_LINE, line=line_number, key=key, error=str(e))
            return record

        for name, value in data.items():
            if not isinstance(value, str):
                value = json.dumps(value, ensure_ascii=False)
            record.add(name, value)

        return record
