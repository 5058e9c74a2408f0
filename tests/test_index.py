"""
SubSearch Index Tests
=====================
Covers the SubstringIndex operations and SearchResult:
  ✔ value normalization on write
  ✔ overwrite / delete / non-dangling outer keys
  ✔ substring matching, case-insensitivity, sort order
  ✔ pagination clamping and the stop == 0 sentinel
  ✔ flush
  ✔ elapsed formatting and result record
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from indexing.result import SearchResult, format_duration
from indexing.substring_index import SubstringIndex, clamp_range, fold_case


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def index():
    return SubstringIndex()


@pytest.fixture
def users(index):
    """users: 1 → Alice Smith, 2 → bob jones."""
    index.set("users", "1", "Alice Smith")
    index.set("users", "2", "bob jones")
    return index


@pytest.fixture
def fruits(index):
    """fruits with ids deliberately inserted out of order."""
    for item_id, value in [("k", "Banana"), ("c", "Cranberry"), ("a", "Apple"),
                           ("x", "Pineapple"), ("m", "Grape"), ("b", "apricot")]:
        index.set("fruits", item_id, value)
    return index


# ═══════════════════════════════════════════════════════════════════════════
# Mutation Tests
# ═══════════════════════════════════════════════════════════════════════════

class TestSet:

    @pytest.mark.parametrize("value", ["Alice Smith", "ALICE SMITH", "alice smith", "ÀLICE"])
    def test_value_stored_lowercase(self, index, value):
        index.set("users", "1", value)
        assert index.get("users", "1") == value.lower()

    def test_key_and_id_not_normalized(self, index):
        index.set("Users", "ID-1", "x")
        assert index.keys() == ["Users"]
        assert index.get("Users", "ID-1") == "x"
        assert index.get("users", "ID-1") is None

    def test_overwrite(self, users):
        users.set("users", "1", "Carol King")
        assert users.get("users", "1") == "carol king"
        assert users.count("users") == 2
        assert users.search("users", "smith").count == 0

    def test_keys_are_partitions(self, index):
        index.set("a", "1", "shared text")
        index.set("b", "1", "other")
        assert index.search("a", "shared").found == ["1"]
        assert index.search("b", "shared").found == []
        assert len(index) == 2

    def test_empty_value(self, index):
        index.set("k", "1", "")
        assert "k" in index
        assert index.search("k", "").found == ["1"]


class TestFoldCase:
    """Lowercasing is one character in, one character out."""

    def test_dotted_capital_i_stored_as_plain_i(self, index):
        index.set("k", "1", "İstanbul")
        assert index.get("k", "1") == "istanbul"
        assert index.search("k", "istanbul").found == ["1"]

    def test_dotted_capital_i_in_query(self, index):
        index.set("k", "1", "istanbul")
        assert index.search("k", "İST").found == ["1"]

    def test_final_sigma_not_contextual(self, index):
        index.set("k", "1", "ΟΔΟΣ")
        assert index.get("k", "1") == "οδοσ"
        assert index.search("k", "δοσ").found == ["1"]

    @pytest.mark.parametrize("text", ["İstanbul", "ΟΔΟΣ", "Straße", "ÀLICE", "plain"])
    def test_length_preserved(self, text):
        assert len(fold_case(text)) == len(text)

    def test_ascii(self):
        assert fold_case("Bob JONES 42") == "bob jones 42"


class TestDelete:

    def test_delete_unknown_key_is_noop(self, users):
        users.delete("nope", "1")
        assert users.keys() == ["users"]

    def test_delete_unknown_id_is_noop(self, users):
        users.delete("users", "99")
        assert users.count("users") == 2

    def test_delete_one(self, users):
        users.delete("users", "1")
        assert users.get("users", "1") is None
        assert users.search("users", "").found == ["2"]

    def test_last_delete_removes_key(self, users):
        users.delete("users", "1")
        users.delete("users", "2")
        assert "users" not in users
        assert users.keys() == []
        assert users.count("users") == 0
        assert len(users) == 0

    def test_key_can_be_reused_after_removal(self, users):
        users.delete("users", "1")
        users.delete("users", "2")
        users.set("users", "3", "Dan")
        assert users.keys() == ["users"]
        assert users.search("users", "dan").found == ["3"]


class TestFlush:

    def test_flush_clears_everything(self, users, fruits):
        users.flush()
        assert users.keys() == []
        for key in ("users", "fruits"):
            result = users.search(key, "")
            assert result.count == 0
            assert result.found == []

    def test_usable_after_flush(self, users):
        users.flush()
        users.set("users", "9", "Zed")
        assert users.search("users", "zed").found == ["9"]


# ═══════════════════════════════════════════════════════════════════════════
# Search Tests
# ═══════════════════════════════════════════════════════════════════════════

class TestSearch:

    def test_users_scenario(self, users):
        result = users.search("users", "smith", 0, 0)
        assert result.key == "users"
        assert result.found == ["1"]
        assert result.count == 1
        assert result.start == 0
        assert result.stop == 1

    def test_users_scenario_single_row(self, users):
        result = users.search("users", "o", 0, 1)
        # "bob jones" matches, "alice smith" does not
        assert result.found == ["2"]
        assert result.stop == 1

    def test_query_case_insensitive(self, users):
        assert users.search("users", "SMITH").found == ["1"]
        assert users.search("users", "aLiCe").found == ["1"]

    def test_unknown_key(self, users):
        result = users.search("missing", "a", 3, 7)
        assert result == SearchResult(key="missing")
        assert result.found == []
        assert result.count == 0
        assert result.elapsed == ""

    def test_no_matches(self, users):
        result = users.search("users", "zzz")
        assert result.found == []
        assert result.count == 0
        assert (result.start, result.stop) == (0, 0)

    def test_empty_query_matches_all(self, fruits):
        result = fruits.search("fruits", "", 0, 0)
        assert result.count == 6
        assert result.found == ["a", "b", "c", "k", "m", "x"]

    def test_sorted_ascending(self, fruits):
        result = fruits.search("fruits", "ap")
        # apple, pineapple, apricot, grape
        assert result.found == ["a", "b", "m", "x"]
        assert result.found == sorted(result.found)

    def test_sort_is_codepoint_order(self, index):
        for item_id in ["b", "B", "a", "10", "9", "é"]:
            index.set("k", item_id, "v")
        assert index.search("k", "v").found == ["10", "9", "B", "a", "b", "é"]

    def test_every_match_contains_query(self, fruits):
        result = fruits.search("fruits", "AN", 0, 0)
        for item_id in result.found:
            assert "an" in fruits.get("fruits", item_id)
        # banana, cranberry
        assert result.found == ["c", "k"]

    def test_count_includes_paginated_out(self, fruits):
        result = fruits.search("fruits", "ap", 1, 2)
        assert result.count == 4
        assert result.found == ["b"]
        assert (result.start, result.stop) == (1, 2)

    def test_elapsed_is_set(self, users):
        assert users.search("users", "smith").elapsed.endswith("s")

    def test_result_is_fresh_per_call(self, users):
        first = users.search("users", "")
        first.found.append("tampered")
        assert users.search("users", "").found == ["1", "2"]


class TestPagination:

    def test_zero_stop_is_unbounded(self, fruits):
        result = fruits.search("fruits", "", 0, 0)
        assert len(result.found) == 6
        assert (result.start, result.stop) == (0, 6)

    def test_start_clamped_down_to_stop(self, fruits):
        result = fruits.search("fruits", "", 5, 2)
        assert result.found == []
        assert (result.start, result.stop) == (2, 2)
        assert result.count == 6

    def test_negative_start(self, fruits):
        result = fruits.search("fruits", "", -3, 2)
        assert result.found == ["a", "b"]
        assert (result.start, result.stop) == (0, 2)

    def test_stop_past_end(self, fruits):
        result = fruits.search("fruits", "", 4, 100)
        assert result.found == ["m", "x"]
        assert (result.start, result.stop) == (4, 6)

    def test_start_with_zero_stop_resets_to_zero(self, fruits):
        # start > stop(0) pulls start down to 0 before stop widens
        result = fruits.search("fruits", "", 3, 0)
        assert (result.start, result.stop) == (0, 6)
        assert len(result.found) == 6

    def test_start_past_matches(self, fruits):
        result = fruits.search("fruits", "", 10, 20)
        assert result.found == []
        assert (result.start, result.stop) == (6, 6)

    def test_negative_stop(self, fruits):
        result = fruits.search("fruits", "", 0, -2)
        assert result.found == []
        assert (result.start, result.stop) == (0, 0)

    @pytest.mark.parametrize("start,stop,total,expected", [
        (0, 0, 5, (0, 5)),
        (5, 2, 10, (2, 2)),
        (-1, 3, 10, (0, 3)),
        (2, 50, 10, (2, 10)),
        (7, 0, 10, (0, 10)),
        (0, 0, 0, (0, 0)),
        (4, 9, 3, (3, 3)),
        (-5, -2, 3, (0, 0)),
    ])
    def test_clamp_range(self, start, stop, total, expected):
        assert clamp_range(start, stop, total) == expected


# ═══════════════════════════════════════════════════════════════════════════
# Result Tests
# ═══════════════════════════════════════════════════════════════════════════

class TestSearchResult:

    def test_to_dict_field_names(self, users):
        record = users.search("users", "smith").to_dict()
        assert set(record) == {"key", "found", "count", "start", "stop", "elapsed"}
        assert record["found"] == ["1"]
        assert record["count"] == 1

    def test_len(self, fruits):
        assert len(fruits.search("fruits", "", 0, 3)) == 3


class TestFormatDuration:

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (0.0004, "0s"),
        (0.0006, "1ms"),
        (0.007, "7ms"),
        (0.999, "999ms"),
        (1.0, "1s"),
        (1.25, "1.25s"),
        (61.5, "1m1.5s"),
        (123.0, "2m3s"),
        (3600.0, "1h0m0s"),
        (3725.001, "1h2m5.001s"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected
