"""
Tests for court label helpers.
"""

from padelpro.utils.courts import WAITING_LABEL, court_label_for_index, parse_court_names


def test_parse_court_names_string():
    assert parse_court_names("Central, 2 ,Cristal") == ["Central", "2", "Cristal"]


def test_parse_court_names_list():
    assert parse_court_names(["Central", " ", 3]) == ["Central", "3"]


def test_parse_court_names_empty():
    assert parse_court_names(None) == []
    assert parse_court_names("") == []


def test_label_uses_club_names():
    assert court_label_for_index(["Central", "Cristal"], 2) == "Cristal"


def test_label_falls_back_to_number():
    assert court_label_for_index(["Central"], 3) == "3"
    assert court_label_for_index(None, 1) == "1"


def test_waiting_match_has_no_court():
    assert court_label_for_index(["Central"], None) == WAITING_LABEL
