import math

from prereq_parser import build_prereq_check_string, parse_prereqs, prereqs_satisfied


class TestParsePrereqs:
    def test_none(self):
        assert parse_prereqs(None) == []

    def test_nan(self):
        assert parse_prereqs(math.nan) == []

    def test_empty(self):
        assert parse_prereqs("") == []

    def test_blank(self):
        assert parse_prereqs("   ") == []

    def test_single(self):
        assert parse_prereqs("DCCB-00107") == ["DCCB-00107"]

    def test_list_trimmed(self):
        assert parse_prereqs(" A , B,C ") == ["A", "B", "C"]

    def test_empty_tokens_ignored(self):
        assert parse_prereqs("A,,B,") == ["A", "B"]

    def test_only_commas(self):
        assert parse_prereqs(" , ,") == []


class TestPrereqsSatisfied:
    def test_no_prereqs(self):
        assert prereqs_satisfied([], set()) is True

    def test_all_approved(self):
        assert prereqs_satisfied(["A", "B"], {"A", "B", "C"}) is True

    def test_one_missing(self):
        assert prereqs_satisfied(["A", "B"], {"A"}) is False


class TestPrereqCheckString:
    def test_no_prereqs(self):
        assert build_prereq_check_string([], set()) == "No prerequisites"

    def test_marks(self):
        assert build_prereq_check_string(["A", "B"], {"A"}) == "A ✓; B ✗"
