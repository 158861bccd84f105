from __future__ import annotations

import pytest

from intake.aggregate import (
    NO_IMPROVEMENTS,
    NO_STRENGTHS,
    NO_WORK_AGAIN,
    aggregate_peer_rows,
    group_by_key,
    join_text,
    parse_days,
    parse_int,
    parse_score,
)

SCORE = "DÊ UMA NOTA GERAL PARA O COLABORADOR"
STRENGTHS = "PONTOS QUE FAZ BEM E DEVE EXPLORAR"
IMPROVE = "PONTOS QUE DEVE MELHORAR"
AGAIN = "VOCÊ FICARIA MOTIVADO EM TRABALHAR NOVAMENTE COM ESTE COLABORADOR"


class TestGroupByKey:
    def test_groups_in_first_seen_order(self):
        rows = [{"k": "b", "v": 1}, {"k": "a", "v": 2}, {"k": "b", "v": 3}]
        groups = group_by_key(rows, "k")
        assert list(groups) == ["b", "a"]
        assert [r["v"] for r in groups["b"]] == [1, 3]

    def test_blank_keys_collected_under_none(self):
        rows = [{"k": None}, {"k": "  "}, {}, {"k": "a"}]
        groups = group_by_key(rows, "k")
        assert len(groups[None]) == 3
        assert len(groups["a"]) == 1

    def test_callable_key(self):
        rows = [{"Email": " a@x.com "}, {"Email": "a@x.com"}]
        groups = group_by_key(rows, lambda r: r["Email"])
        assert list(groups) == ["a@x.com"]


class TestParsers:
    @pytest.mark.parametrize("value, expected", [
        ("8", 8.0), (6, 6.0), (4.5, 4.5), ("4,5", 4.5), ("3.5 - bom", 3.5),
        ("1e1", 10.0), ("2.5E-1", 0.25), ("7e", 7.0), ("5 estrelas", 5.0),
        ("NotaInvalida", None), ("", None), (None, None),
    ])
    def test_parse_score(self, value, expected):
        assert parse_score(value) == expected

    def test_parse_int_truncates(self):
        assert parse_int("4") == 4
        assert parse_int("4.7") == 4
        assert parse_int(5.0) == 5
        assert parse_int("abc") is None

    @pytest.mark.parametrize("value, expected", [
        ("3 meses", 3), ("cerca de 120 dias", 120), ("desde 2023, 40 dias", 2023),
        ("sem informação", 0), (None, 0), (15, 15),
    ])
    def test_parse_days(self, value, expected):
        assert parse_days(value) == expected

    def test_join_text(self):
        assert join_text(["a", None, "  ", "b"], "fallback") == "a\nb"
        assert join_text([None, ""], "fallback") == "fallback"


class TestAggregatePeerRows:
    def test_mean_of_scores(self):
        agg = aggregate_peer_rows([{SCORE: "8"}, {SCORE: "6"}])
        assert agg.overall_score == 7.0
        assert agg.rows == 2

    def test_rounded_to_two_decimals(self):
        agg = aggregate_peer_rows([{SCORE: "4"}, {SCORE: "4"}, {SCORE: "5"}])
        assert agg.overall_score == 4.33

    def test_unparseable_scores_ignored(self):
        agg = aggregate_peer_rows([{SCORE: "NotaInvalida"}, {SCORE: "5.0"}])
        assert agg.overall_score == 5.0

    def test_zero_when_no_usable_score(self):
        agg = aggregate_peer_rows([{SCORE: "NotaInvalida"}, {SCORE: None}])
        assert agg.overall_score == 0.0

    def test_text_fields_joined(self):
        agg = aggregate_peer_rows([
            {STRENGTHS: "Boa comunicação", IMPROVE: "Proatividade", AGAIN: "Sim"},
            {STRENGTHS: "Conhecimento técnico", IMPROVE: "", AGAIN: None},
        ])
        assert agg.strengths == "Boa comunicação\nConhecimento técnico"
        assert agg.areas_to_improve == "Proatividade"
        assert agg.would_work_again == "Sim"

    def test_text_fallbacks(self):
        agg = aggregate_peer_rows([{SCORE: "4"}])
        assert agg.strengths == NO_STRENGTHS
        assert agg.areas_to_improve == NO_IMPROVEMENTS
        assert agg.would_work_again == NO_WORK_AGAIN
