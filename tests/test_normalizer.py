"""Tests for the record normalizer and severity classification."""

from datetime import datetime, timezone

import pytest

from threatpulse.pipeline.normalizer import (
    DESCRIPTION_MAX_LENGTH,
    MAX_REFERENCE_LINKS,
    NO_DESCRIPTION,
    NormalizedCve,
    Severity,
    SkipReason,
    classify_severity,
    normalize,
    select_cvss_score,
)

_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


@pytest.mark.parametrize(
    "score, expected",
    [
        (10.0, Severity.CRITICAL),
        (9.0, Severity.CRITICAL),
        (8.999, Severity.HIGH),
        (7.0, Severity.HIGH),
        (6.9, Severity.MEDIUM),
        (4.0, Severity.MEDIUM),
        (3.9, Severity.LOW),
        (0.0, Severity.LOW),
        (None, Severity.LOW),
    ],
)
def test_classify_severity(score, expected):
    assert classify_severity(score) is expected


def test_severity_is_monotonic():
    scores = [round(i * 0.1, 1) for i in range(0, 101)]
    tiers = [_ORDER.index(classify_severity(s)) for s in scores]
    assert tiers == sorted(tiers)


def test_normalize_full_record(make_nvd_item):
    raw = make_nvd_item(
        cve_id="CVE-2024-0001",
        description="Heap overflow in the Linux kernel used by Docker hosts.",
        score=9.8,
        references=["https://a.example/1", "https://b.example/2"],
    )
    record = normalize(raw)

    assert isinstance(record, NormalizedCve)
    assert record.cve_id == "CVE-2024-0001"
    assert record.cvss_score == 9.8
    assert record.severity is Severity.CRITICAL
    assert record.published_at == datetime(2024, 1, 9, 10, 0, tzinfo=timezone.utc)
    assert record.reference_links == ["https://a.example/1", "https://b.example/2"]
    assert record.affected_products == ["linux", "docker"]
    assert record.source == "nvd"


def test_no_score_defaults_to_low(make_nvd_item):
    record = normalize(make_nvd_item(score=None))
    assert record.cvss_score is None
    assert record.severity is Severity.LOW


def test_score_prefers_newest_metric_version():
    metrics = {
        "cvssMetricV2": [{"cvssData": {"baseScore": 5.0}}],
        "cvssMetricV30": [{"cvssData": {"baseScore": 7.5}}],
        "cvssMetricV31": [{"cvssData": {"baseScore": 8.1}}],
    }
    assert select_cvss_score(metrics) == 8.1


def test_score_v40_wins_over_v31():
    metrics = {
        "cvssMetricV31": [{"cvssData": {"baseScore": 8.1}}],
        "cvssMetricV40": [{"cvssData": {"baseScore": 9.3}}],
    }
    assert select_cvss_score(metrics) == 9.3


def test_score_falls_back_to_v2():
    metrics = {"cvssMetricV31": [], "cvssMetricV2": [{"cvssData": {"baseScore": 4.3}}]}
    assert select_cvss_score(metrics) == 4.3


def test_score_ignores_unusable_values():
    metrics = {
        "cvssMetricV31": [{"cvssData": {"baseScore": "high"}}, {"cvssData": {}}],
        "cvssMetricV30": [{"cvssData": {"baseScore": 42.0}}],
        "cvssMetricV2": [{"cvssData": {"baseScore": 6.8}}],
    }
    assert select_cvss_score(metrics) == 6.8
    assert select_cvss_score(None) is None


def test_description_prefers_english():
    raw = {
        "cve": {
            "id": "CVE-2024-0002",
            "published": "2024-01-09T10:00:00.000",
            "descriptions": [
                {"lang": "es", "value": "Una vulnerabilidad"},
                {"lang": "en", "value": "A vulnerability"},
            ],
        }
    }
    assert normalize(raw).description == "A vulnerability"


def test_description_falls_back_to_first_entry(make_nvd_item):
    record = normalize(make_nvd_item(description="Une faille", lang="fr"))
    assert record.description == "Une faille"


def test_description_placeholder_when_missing():
    raw = {"cve": {"id": "CVE-2024-0003", "published": "2024-01-09T10:00:00.000"}}
    record = normalize(raw)
    assert record.description == NO_DESCRIPTION
    assert record.affected_products == []
    assert record.reference_links == []


def test_long_description_truncated_to_exact_limit(make_nvd_item):
    record = normalize(make_nvd_item(description="x" * 5000))
    assert len(record.description) == DESCRIPTION_MAX_LENGTH == 2000


def test_short_description_untouched(make_nvd_item):
    text = "y" * 1999
    assert normalize(make_nvd_item(description=text)).description == text


def test_reference_links_capped_in_feed_order(make_nvd_item):
    urls = [f"https://ref.example/{i}" for i in range(15)] + ["https://ref.example/0"]
    record = normalize(make_nvd_item(references=urls))
    assert len(record.reference_links) == MAX_REFERENCE_LINKS
    assert record.reference_links == urls[:10]


def test_reference_links_not_deduplicated(make_nvd_item):
    urls = ["https://dup.example", "https://dup.example"]
    assert normalize(make_nvd_item(references=urls)).reference_links == urls


def test_affected_products_follow_vocabulary_order(make_nvd_item):
    record = normalize(make_nvd_item(description="IBM and Oracle on Microsoft Windows with MySQL"))
    assert record.affected_products == ["windows", "mysql", "microsoft", "oracle", "ibm"]


@pytest.mark.parametrize(
    "raw, reason",
    [
        ("not a dict", SkipReason.MALFORMED),
        ({"nothing": 1}, SkipReason.MALFORMED),
        ({"cve": {"published": "2024-01-09T10:00:00.000"}}, SkipReason.MISSING_ID),
        ({"cve": {"id": "  ", "published": "2024-01-09T10:00:00.000"}}, SkipReason.MISSING_ID),
        ({"cve": {"id": "CVE-2024-0004"}}, SkipReason.INVALID_PUBLISHED),
        ({"cve": {"id": "CVE-2024-0004", "published": "yesterday"}}, SkipReason.INVALID_PUBLISHED),
    ],
)
def test_unusable_records_are_skipped(raw, reason):
    assert normalize(raw) is reason


def test_published_with_zulu_suffix(make_nvd_item):
    record = normalize(make_nvd_item(published="2024-01-09T10:00:00Z"))
    assert record.published_at == datetime(2024, 1, 9, 10, 0, tzinfo=timezone.utc)
