"""Alert — flags one (asset, CVE) pair judged affected by correlation."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threatpulse.models.base import Base, SiteScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Alert(UUIDPrimaryKeyMixin, SiteScopedMixin, TimestampMixin, Base):
    __tablename__ = "alerts"
    __table_args__ = (
        UniqueConstraint("asset_id", "cve_id", name="uq_alerts_asset_cve"),
    )

    asset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cve_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("cves.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # new / read / dismissed — only "new" is ever written by the pipeline
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new", index=True)
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    asset: Mapped["Asset"] = relationship("Asset", back_populates="alerts")  # noqa: F821
    cve: Mapped["Cve"] = relationship("Cve", back_populates="alerts")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Alert asset={self.asset_id} cve={self.cve_id} status={self.status!r}>"
