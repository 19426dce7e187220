import random

import pytest

from sdbload.records import (
    MAX_VALUE_LENGTH,
    Attribute,
    Record,
    chunk_name,
    chunk_value,
    join_chunks,
)


def test_chunk_names():
    assert chunk_name("body", 0) == "body"
    assert chunk_name("body", 1) == "body*1"
    assert chunk_name("body", 12) == "body*12"


class TestChunkValue:
    def test_short_value_is_single_attribute(self):
        assert chunk_value("a", "hello") == [Attribute("a", "hello")]

    def test_empty_value_is_single_attribute(self):
        assert chunk_value("a", "") == [Attribute("a", "")]

    def test_value_at_limit_is_not_split(self):
        value = "x" * MAX_VALUE_LENGTH
        chunks = chunk_value("a", value)
        assert [c.name for c in chunks] == ["a"]
        assert chunks[0].value == value

    def test_value_one_over_limit_is_split(self):
        value = "y" * (MAX_VALUE_LENGTH + 1)
        chunks = chunk_value("a", value)
        assert [c.name for c in chunks] == ["a", "a*1"]
        assert [len(c.value) for c in chunks] == [MAX_VALUE_LENGTH, 1]

    def test_chunks_never_exceed_limit(self):
        chunks = chunk_value("a", "z" * 5000)
        assert [c.name for c in chunks] == ["a", "a*1", "a*2", "a*3", "a*4"]
        assert all(len(c.value) <= MAX_VALUE_LENGTH for c in chunks)

    def test_multibyte_value_at_byte_limit_is_not_split(self):
        value = "é" * (MAX_VALUE_LENGTH // 2)
        assert len(value.encode("utf-8")) == MAX_VALUE_LENGTH
        assert chunk_value("a", value) == [Attribute("a", value)]

    def test_multibyte_value_one_byte_over_is_split(self):
        value = "é" * (MAX_VALUE_LENGTH // 2) + "x"
        chunks = chunk_value("a", value)
        assert [c.name for c in chunks] == ["a", "a*1"]
        assert [len(c.value.encode("utf-8")) for c in chunks] == [MAX_VALUE_LENGTH, 1]

    def test_limit_counts_bytes_not_characters(self):
        chunks = chunk_value("body", "é" * MAX_VALUE_LENGTH)
        assert [len(c.value.encode("utf-8")) for c in chunks] == [MAX_VALUE_LENGTH, MAX_VALUE_LENGTH]

    def test_chunks_never_split_a_character(self):
        # 3-byte and 4-byte characters do not divide the limit evenly
        value = ("€" + "😀" + "ab") * 700
        chunks = chunk_value("mixed", value)
        sizes = [len(c.value.encode("utf-8")) for c in chunks]
        assert all(size <= MAX_VALUE_LENGTH for size in sizes)
        assert all(size > MAX_VALUE_LENGTH - 4 for size in sizes[:-1])
        assert join_chunks(chunks) == {"mixed": value}


class TestJoinChunks:
    @pytest.mark.parametrize(
        "length",
        [0, 1, MAX_VALUE_LENGTH - 1, MAX_VALUE_LENGTH, MAX_VALUE_LENGTH + 1, 3 * MAX_VALUE_LENGTH + 7],
    )
    def test_round_trip(self, length):
        rng = random.Random(length)
        value = "".join(rng.choice("abcdefghij{}[]:,\"é") for _ in range(length))
        assert join_chunks(chunk_value("payload", value)) == {"payload": value}

    def test_orders_by_numeric_suffix(self):
        value = "".join(str(i % 10) * MAX_VALUE_LENGTH for i in range(12))
        chunks = chunk_value("big", value)
        assert len(chunks) == 12

        shuffled = list(chunks)
        random.Random(3).shuffle(shuffled)
        assert join_chunks(shuffled)["big"] == value

    def test_keeps_attributes_apart(self):
        attrs = chunk_value("a", "1" * 1500) + chunk_value("b", "short")
        assert join_chunks(attrs) == {"a": "1" * 1500, "b": "short"}


class TestRecord:
    def test_add_applies_chunking(self):
        record = Record("item-1")
        record.add("name", "value")
        record.add("long", "q" * (MAX_VALUE_LENGTH + 10))
        assert [a.name for a in record.attributes] == ["name", "long", "long*1"]

    def test_to_item_shape(self):
        record = Record("item-1", [Attribute("first", "1"), Attribute("second", "2")])
        assert record.to_item() == {
            "Name": "item-1",
            "Attributes": [
                {"Name": "first", "Value": "1", "Replace": False},
                {"Name": "second", "Value": "2", "Replace": False},
            ],
        }

    def test_to_item_replace_flag(self):
        record = Record("item-1", [Attribute("first", "1")])
        assert record.to_item(replace=True)["Attributes"][0]["Replace"] is True
