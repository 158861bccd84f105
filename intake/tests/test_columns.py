from __future__ import annotations

from intake import columns
from intake.columns import find_column, normalize_header, resolve_column


class TestNormalizeHeader:
    def test_collapses_whitespace_strips_accents_and_casefolds(self):
        assert normalize_header("  EMAIL DA   REFERÊNCIA\n( nome.sobrenome ) ") == "email da referencia ( nome.sobrenome )"

    def test_plain_label(self):
        assert normalize_header("Unidade") == "unidade"


class TestResolveColumn:
    def test_fuzzy_reference_email(self):
        row = {"EMAIL DA  REFERÊNCIA ( nome.sobrenome )": "p@x.com", "JUSTIFICATIVA": "great"}
        assert resolve_column(row, *columns.REFERENCE_EMAIL) == "p@x.com"
        assert resolve_column(row, *columns.REFERENCE_JUSTIFICATION) == "great"

    def test_absent_column_returns_none(self):
        assert resolve_column({"Other": 1}, *columns.REFERENCE_EMAIL) is None

    def test_first_match_in_row_key_order_wins(self):
        row = {"Projeto A": "alpha", "Projeto B": "beta"}
        assert find_column(row, "projeto") == "Projeto A"
        assert resolve_column(row, "projeto") == "alpha"

    def test_needles_tried_in_order(self):
        row = {"Name": "A B", "Nome": "C D"}
        assert resolve_column(row, "nome", "name") == "C D"

    def test_english_profile_headers(self):
        row = {"Email": "a@x.com", "Name": "A B", "Unit": "U1", "Cycle": "2024.1"}
        assert resolve_column(row, *columns.PROFILE_NAME) == "A B"
        assert resolve_column(row, *columns.PROFILE_UNIT) == "U1"
        assert resolve_column(row, *columns.PROFILE_CYCLE) == "2024.1"

    def test_self_score_not_confused_with_justification(self):
        row = {
            "DADOS E FATOS DA AUTO-AVALIAÇÃO": "facts",
            "CRITÉRIO": "Organização",
            "AUTO-AVALIAÇÃO": "4",
        }
        assert resolve_column(row, *columns.SELF_SCORE) == "4"
        assert resolve_column(row, *columns.SELF_JUSTIFICATION) == "facts"

    def test_predicate_needle(self):
        row = {"x": 1, "y": 2}
        assert find_column(row, lambda header: header == "y") == "y"

    def test_empty_needle_matches_nothing(self):
        assert find_column({"a": 1}, "   ") is None
