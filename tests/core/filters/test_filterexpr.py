"""Tests for filter expression parsing and matching."""

import pytest

from src.core.filters.filterexpr import (
    FilterParseError,
    matches_filter,
    parse,
    parse_filter,
    parse_order,
    parse_term,
)
from src.core.models import (
    FilterExpression,
    FilterOp,
    FilterTerm,
    JobPhase,
    OrderExpression,
)
from tests.conftest import make_job


class TestParse:
    """Tests for parsing search terms."""

    @pytest.mark.parametrize(
        "expr, expected",
        [
            ("foo==bar", FilterTerm("foo", "bar", FilterOp.EQUALS, False)),
            ("foo!==bar", FilterTerm("foo", "bar", FilterOp.EQUALS, True)),
            ("foo~=bar", FilterTerm("foo", "bar", FilterOp.CONTAINS, False)),
            ("foo!~=bar", FilterTerm("foo", "bar", FilterOp.CONTAINS, True)),
            ("foo|=bar", FilterTerm("foo", "bar", FilterOp.STARTS_WITH, False)),
            ("foo!|=bar", FilterTerm("foo", "bar", FilterOp.STARTS_WITH, True)),
            ("foo=|bar", FilterTerm("foo", "bar", FilterOp.ENDS_WITH, False)),
            ("foo!=|bar", FilterTerm("foo", "bar", FilterOp.ENDS_WITH, True)),
            ("success==true", FilterTerm("success", "1", FilterOp.EQUALS, False)),
            ("success==false", FilterTerm("success", "0", FilterOp.EQUALS, False)),
            ("success!==true", FilterTerm("success", "1", FilterOp.EQUALS, True)),
            ("success!==false", FilterTerm("success", "0", FilterOp.EQUALS, True)),
            ("trim == whitespace", FilterTerm("trim", "whitespace", FilterOp.EQUALS, False)),
            ("phase==running", FilterTerm("phase", "running", FilterOp.EQUALS, False)),
        ],
    )
    def test_valid_terms(self, expr, expected):
        assert parse([expr]) == [expected]

    def test_missing_operator(self):
        with pytest.raises(FilterParseError, match="missing operator"):
            parse_term("foo")

    def test_invalid_phase(self):
        with pytest.raises(FilterParseError, match="invalid phase: blabla"):
            parse_term("phase==blabla")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse(["foo"])

    def test_parse_filter_makes_one_expression_per_term(self):
        result = parse_filter(["phase==running", "owner==csweichel"])

        assert len(result) == 2
        assert result[0].terms == [FilterTerm("phase", "running")]
        assert result[1].terms == [FilterTerm("owner", "csweichel")]


class TestParseOrder:
    """Tests for parsing order expressions."""

    def test_asc_and_desc(self):
        assert parse_order(["name:asc", "created:desc"]) == [
            OrderExpression("name", True),
            OrderExpression("created", False),
        ]

    def test_invalid_order(self):
        with pytest.raises(FilterParseError):
            parse_order(["name"])


class TestMatchesFilter:
    """Tests for local filter evaluation."""

    def test_phase_equals(self):
        job = make_job("werft-main.1", phase=JobPhase.DONE)

        assert matches_filter(job, [FilterExpression([FilterTerm("phase", "done")])])

    def test_name_starts_with(self):
        job = make_job("foobar.1")
        expr = [FilterExpression([FilterTerm("name", "foobar", FilterOp.STARTS_WITH)])]

        assert matches_filter(job, expr)

    def test_empty_filter_matches_everything(self):
        assert matches_filter(make_job("x.1"), [])

    def test_no_job_never_matches_non_empty_filter(self):
        assert not matches_filter(None, parse_filter(["name==x"]))

    def test_all_expressions_must_match(self):
        job = make_job("werft-main.1", owner="alice")

        assert matches_filter(job, parse_filter(["owner==alice", "name|=werft"]))
        assert not matches_filter(job, parse_filter(["owner==alice", "name|=other"]))

    def test_any_term_within_expression_matches(self):
        job = make_job("werft-main.1", owner="alice")
        expr = [FilterExpression([FilterTerm("owner", "bob"), FilterTerm("owner", "alice")])]

        assert matches_filter(job, expr)

    def test_negation(self):
        job = make_job("werft-main.1", owner="alice")

        assert not matches_filter(job, parse_filter(["owner!==alice"]))
        assert matches_filter(job, parse_filter(["owner!==bob"]))

    def test_success_field(self):
        ok = make_job("a.1", success=True)
        failed = make_job("a.2", success=False)
        expr = parse_filter(["success==true"])

        assert matches_filter(ok, expr)
        assert not matches_filter(failed, expr)

    def test_repository_and_annotation_fields(self):
        job = make_job("a.1", ref="feature-x", annotations={"team": "infra"})

        assert matches_filter(job, parse_filter(["repo.ref~=feature", "annotation.team==infra"]))

    def test_terms_on_unknown_fields_do_not_match(self):
        job = make_job("a.1")

        assert not matches_filter(job, parse_filter(["annotation.missing==x"]))
