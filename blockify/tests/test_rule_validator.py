import pytest

from blockify.core.validation import ErrorReport, RuleValidator
from blockify.core.validation.errors import (
    FIELD_REQUIRED,
    INVALID_HOST,
    INVALID_PROTOCOL,
    INVALID_TYPE,
    INVALID_URL,
    INVALID_VALUE,
    REJECTED,
)

LINK_RULES = {
    "href": "required;url;allowedProtocol:https|http|ftp",
    "target": "values:_blank",
}


def test_valid_item_keeps_only_declared_fields():
    report = ErrorReport()
    kept = RuleValidator.filter(
        {"href": "https://example.com", "target": "_blank", "onclick": "x()"},
        LINK_RULES,
        report,
    )

    assert kept == {"href": "https://example.com", "target": "_blank"}
    assert report.is_valid


def test_missing_required_field_rejects_whole_item():
    report = ErrorReport()

    assert RuleValidator.filter({"target": "_blank"}, LINK_RULES, report) is None
    assert [e.code for e in report.get("href")] == [FIELD_REQUIRED]
    assert report.get("href")[0].is_required_failure


def test_empty_string_counts_as_missing_for_required_fields():
    report = ErrorReport()

    assert RuleValidator.filter({"href": ""}, LINK_RULES, report) is None
    assert "href" in report


def test_failing_required_field_rejects_item_on_first_error():
    report = ErrorReport()

    assert RuleValidator.filter({"href": "javascript:alert(1)"}, LINK_RULES, report) is None
    # url check fails first; protocol check is never recorded
    assert [e.code for e in report.get("href")] == [INVALID_URL]


def test_failing_optional_field_drops_only_that_field():
    report = ErrorReport()
    kept = RuleValidator.filter({"href": "http://a.com", "target": "_self"}, LINK_RULES, report)

    assert kept == {"href": "http://a.com"}
    assert [e.code for e in report.get("target")] == [INVALID_VALUE]
    assert not report.is_valid


def test_optional_field_collects_every_failing_check():
    result = RuleValidator.apply(
        {"link": 5}, {"link": {"type": "string", "url": True, "allowedHost": ["a.com"]}}
    )

    assert not result.rejected
    assert result.kept == {}
    assert [e.code for e in result.errors] == [INVALID_TYPE, INVALID_URL, INVALID_HOST]


def test_present_but_empty_optional_value_is_kept_unchecked():
    kept = RuleValidator.filter({"size": ""}, {"size": "type:integer"})
    assert kept == {"size": ""}


def test_non_mapping_data_is_rejected_without_errors():
    report = ErrorReport()

    assert RuleValidator.filter(["href"], LINK_RULES, report) is None
    assert RuleValidator.filter("x", LINK_RULES, report) is None
    assert report.is_valid


def test_protocol_and_host_checks_ignore_case():
    rules = {"src": {"url": True, "allowedProtocol": ["https"], "allowedHost": ["CDN.example.com"]}}

    assert RuleValidator.filter({"src": "HTTPS://cdn.EXAMPLE.com/a.png"}, rules) == {
        "src": "HTTPS://cdn.EXAMPLE.com/a.png"
    }
    result = RuleValidator.apply({"src": "ftp://cdn.example.com/a.png"}, rules)
    assert [e.code for e in result.errors] == [INVALID_PROTOCOL]


@pytest.mark.parametrize(
    "value",
    [
        "https://",
        "example.com/path",
        'https://a.com/"onmouseover="x',
        "https://a.com/<script>",
        "https://a.com/ space",
        "https://[::1/",
    ],
)
def test_malformed_urls_are_rejected(value):
    result = RuleValidator.apply({"u": value}, {"u": "url"})
    assert [e.code for e in result.errors] == [INVALID_URL]


def test_hostless_schemes_are_well_formed():
    assert RuleValidator.filter({"u": "mailto:a@b.com"}, {"u": "url"}) == {"u": "mailto:a@b.com"}


def test_integer_and_number_types_exclude_booleans():
    rules = {"n": "type:integer", "f": "type:number"}

    assert RuleValidator.filter({"n": 3, "f": 1.5}, rules) == {"n": 3, "f": 1.5}
    assert RuleValidator.filter({"n": True, "f": False}, rules) == {}


def test_before_hook_replaces_value():
    rules = {"name": {"type": "string", "before": lambda v: v.upper()}}
    assert RuleValidator.filter({"name": "abc"}, rules) == {"name": "ABC"}


def test_before_hook_returning_none_rejects_value():
    report = ErrorReport()
    rules = {"name": {"before": lambda v: None}, "keep": "type:string"}

    assert RuleValidator.filter({"name": "x", "keep": "y"}, rules, report) == {"keep": "y"}
    assert [e.code for e in report.get("name")] == [REJECTED]


def test_before_hook_runs_only_after_other_checks_pass():
    calls = []

    def record(value):
        calls.append(value)
        return value

    rules = {"u": {"url": True, "before": record}}
    failed = RuleValidator.apply({"u": "not a url"}, rules)
    RuleValidator.apply({"u": "https://a.com"}, rules)

    assert calls == ["https://a.com"]
    assert [e.code for e in failed.errors] == [INVALID_URL]


def test_error_records_snapshot_of_item_context():
    data = {"href": "https://a.com", "target": "_top"}
    result = RuleValidator.apply(data, LINK_RULES)

    err = result.errors[0]
    assert err.field == "target"
    assert err.item == "_top"
    assert err.context == {"href": "https://a.com", "target": "_top"}
    with pytest.raises(TypeError):
        err.context["x"] = 1


def test_error_report_shape():
    report = ErrorReport()
    RuleValidator.filter({"target": "_top"}, LINK_RULES, report)

    assert len(report) == 1
    assert report.fields() == ["href"]
    payload = report.to_dict()
    assert payload["href"][0]["code"] == FIELD_REQUIRED
    assert payload["href"][0]["rule"]["required"] is True
    assert payload["href"][0]["message"]
