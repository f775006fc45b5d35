"""Keyword correlation between monitored assets and recent CVEs.

Matching is a deliberate heuristic: case-insensitive substring tests, no
version ranges and no CPE precision. It leans toward false positives.
Asset fields, products and the description are trimmed of surrounding
whitespace before comparison, so a padded ``" linux "`` still matches and a
whitespace-only field counts as absent.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AssetProfile:
    id: uuid.UUID
    asset_type: str | None
    vendor: str | None = None
    os_version: str | None = None
    site_id: uuid.UUID | None = None


@dataclass(frozen=True)
class VulnerabilityProfile:
    id: uuid.UUID
    cve_id: str
    description: str | None
    affected_products: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Match:
    asset: AssetProfile
    vulnerability: VulnerabilityProfile


def _term(value: str | None) -> str | None:
    """Lowercased term, or None when blank (an empty needle would match everything)."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def is_affected(asset: AssetProfile, vulnerability: VulnerabilityProfile) -> bool:
    asset_type = _term(asset.asset_type)
    description = _term(vulnerability.description)
    if asset_type is None or description is None:
        return False

    vendor = _term(asset.vendor)
    os_version = _term(asset.os_version)

    if asset_type in description:
        return True
    if vendor is not None and vendor in description:
        return True
    if os_version is not None and os_version in description:
        return True

    asset_terms = [t for t in (asset_type, vendor, os_version) if t is not None]
    for raw_product in vulnerability.affected_products:
        product = _term(raw_product)
        if product is None:
            continue
        for term in asset_terms:
            if product in term or term in product:
                return True

    return False


def correlate(
    vulnerabilities: Iterable[VulnerabilityProfile],
    assets: Iterable[AssetProfile],
) -> list[Match]:
    """Every (asset, vulnerability) pair judged affected, vulnerability-major."""
    assets = list(assets)
    return [
        Match(asset=asset, vulnerability=vuln)
        for vuln in vulnerabilities
        for asset in assets
        if is_affected(asset, vuln)
    ]
