"""CVE model — one vulnerability disclosure ingested from the feed."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threatpulse.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Cve(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "cves"
    __table_args__ = (Index("ix_cves_created_at", "created_at"),)

    # Official CVE identifier (e.g. "CVE-2024-12345") — natural key
    cve_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # low / medium / high / critical — derived from cvss_score
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="low", index=True)

    # Best available CVSS base score (0.0 – 10.0)
    cvss_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    reference_links: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    affected_products: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Feed the record came from
    source: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Relationships
    alerts: Mapped[list["Alert"]] = relationship(  # noqa: F821
        "Alert", back_populates="cve", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Cve {self.cve_id!r} severity={self.severity!r}>"
