"""
Record data model and the long-value chunking rule.

SimpleDB caps attribute values at 1024 bytes, so values longer than
MAX_VALUE_LENGTH UTF-8 bytes are stored as a run of attributes:
name, name*1, name*2, ...
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List


MAX_VALUE_LENGTH = 1020

CHUNK_SEPARATOR = "*"


@dataclass(frozen=True)
class Attribute:
    """A single name/value pair."""
    name: str
    value: str


@dataclass
class Record:
    """An item to load: its name and ordered attributes."""
    item_name: str
    attributes: List[Attribute] = field(default_factory=list)

    def add(self, name: str, value: str):
        """Add a value, split into chunks if it encodes to more than MAX_VALUE_LENGTH bytes."""
        self.attributes.extend(chunk_value(name, value))

    def to_item(self, replace: bool = False) -> dict:
        """SimpleDB ReplaceableItem shape for batch_put_attributes."""
        return {
            "Name": self.item_name,
            "Attributes": [
                {"Name": attr.name, "Value": attr.value, "Replace": replace}
                for attr in self.attributes
            ],
        }


def chunk_name(name: str, index: int) -> str:
    """Name of the index-th chunk; the first chunk keeps the plain name."""
    return name if index == 0 else f"{name}{CHUNK_SEPARATOR}{index}"


def chunk_value(name: str, value: str, limit: int = MAX_VALUE_LENGTH) -> List[Attribute]:
    """
    Split a value into ordered chunks of at most `limit` UTF-8 bytes.

    Chunks end on character boundaries. A value of exactly `limit` bytes
    (or an empty one) stays a single attribute under the plain name.
    """
    if _encoded_length(value) <= limit:
        return [Attribute(name, value)]

    chunks: List[str] = []
    current: List[str] = []
    size = 0
    for char in value:
        width = _encoded_length(char)
        if size + width > limit:
            chunks.append("".join(current))
            current, size = [], 0
        current.append(char)
        size += width
    if current:
        chunks.append("".join(current))

    return [Attribute(chunk_name(name, index), chunk) for index, chunk in enumerate(chunks)]


def _encoded_length(text: str) -> int:
    return len(text.encode("utf-8", errors="surrogatepass"))


def join_chunks(attributes: Iterable[Attribute]) -> Dict[str, str]:
    """
    Reassemble chunked values.

    Returns a mapping of base name to the full value, concatenating
    chunks in numeric suffix order regardless of the order given.
    """
    pattern = re.compile(r"^(.*)\*(\d+)$")
    parts: Dict[str, Dict[int, str]] = {}

    for attr in attributes:
        match = pattern.match(attr.name)
        if match:
            base, index = match.group(1), int(match.group(2))
        else:
            base, index = attr.name, 0
        parts.setdefault(base, {})[index] = attr.value

    return {
        base: "".join(chunks[index] for index in sorted(chunks))
        for base, chunks in parts.items()
    }
