"""Map raw NVD CVE API 2.0 items into normalized vulnerability records.

Everything here is a pure transform: no I/O, no logging side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from threatpulse.pipeline.window import as_utc

DESCRIPTION_MAX_LENGTH = 2000
MAX_REFERENCE_LINKS = 10
NO_DESCRIPTION = "No description available"
PRIMARY_LANGUAGE = "en"

# Newest scoring scheme first
METRIC_PREFERENCE = (
    "cvssMetricV40",
    "cvssMetricV31",
    "cvssMetricV30",
    "cvssMetricV2",
)

PRODUCT_KEYWORDS = (
    "linux",
    "windows",
    "apache",
    "nginx",
    "mysql",
    "postgresql",
    "docker",
    "kubernetes",
    "vmware",
    "cisco",
    "microsoft",
    "oracle",
    "ibm",
)


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SkipReason(str, Enum):
    MALFORMED = "malformed"
    MISSING_ID = "missing_id"
    INVALID_PUBLISHED = "invalid_published"


@dataclass
class NormalizedCve:
    cve_id: str
    description: str
    cvss_score: float | None
    severity: Severity
    published_at: datetime
    reference_links: list[str] = field(default_factory=list)
    affected_products: list[str] = field(default_factory=list)
    source: str = "nvd"


def classify_severity(score: float | None) -> Severity:
    """Bucket a CVSS score; lower bounds are inclusive."""
    if score is None:
        return Severity.LOW
    if score >= 9.0:
        return Severity.CRITICAL
    if score >= 7.0:
        return Severity.HIGH
    if score >= 4.0:
        return Severity.MEDIUM
    return Severity.LOW


def _as_score(value: Any) -> float | None:
    # bool is an int subclass and never a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    score = float(value)
    if not 0.0 <= score <= 10.0:
        return None
    return score


def select_cvss_score(metrics: Any) -> float | None:
    """Return the first base score found, walking METRIC_PREFERENCE in order."""
    if not isinstance(metrics, dict):
        return None
    for version in METRIC_PREFERENCE:
        entries = metrics.get(version) or []
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            cvss_data = entry.get("cvssData")
            if not isinstance(cvss_data, dict):
                continue
            score = _as_score(cvss_data.get("baseScore"))
            if score is not None:
                return score
    return None


def select_description(descriptions: Any) -> str:
    """English text if present, else the first non-empty entry, else a placeholder."""
    if not isinstance(descriptions, list):
        return NO_DESCRIPTION
    entries = [
        d for d in descriptions
        if isinstance(d, dict) and isinstance(d.get("value"), str) and d["value"]
    ]
    for entry in entries:
        if entry.get("lang") == PRIMARY_LANGUAGE:
            return entry["value"]
    if entries:
        return entries[0]["value"]
    return NO_DESCRIPTION


def extract_reference_links(references: Any) -> list[str]:
    if not isinstance(references, list):
        return []
    urls = [
        ref["url"] for ref in references
        if isinstance(ref, dict) and isinstance(ref.get("url"), str) and ref["url"]
    ]
    return urls[:MAX_REFERENCE_LINKS]


def extract_affected_products(description: str) -> list[str]:
    text = description.lower()
    return [keyword for keyword in PRODUCT_KEYWORDS if keyword in text]


def parse_published(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        # NVD emits "2024-01-15T10:15:07.123" (UTC, no offset)
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def normalize(raw: Any) -> NormalizedCve | SkipReason:
    """Normalize one feed item, or say why it cannot be used."""
    if not isinstance(raw, dict) or not isinstance(raw.get("cve"), dict):
        return SkipReason.MALFORMED
    cve = raw["cve"]

    cve_id = cve.get("id")
    if not isinstance(cve_id, str) or not cve_id.strip():
        return SkipReason.MISSING_ID

    published_at = parse_published(cve.get("published"))
    if published_at is None:
        return SkipReason.INVALID_PUBLISHED

    description = select_description(cve.get("descriptions"))
    score = select_cvss_score(cve.get("metrics"))

    return NormalizedCve(
        cve_id=cve_id.strip(),
        description=description[:DESCRIPTION_MAX_LENGTH],
        cvss_score=score,
        severity=classify_severity(score),
        published_at=published_at,
        reference_links=extract_reference_links(cve.get("references")),
        affected_products=extract_affected_products(description),
    )
