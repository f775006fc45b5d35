"""Asset model — a monitored device owned by the inventory."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threatpulse.models.base import Base, SiteScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Asset(UUIDPrimaryKeyMixin, SiteScopedMixin, TimestampMixin, Base):
    __tablename__ = "assets"

    # Custom label (user-defined)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Network identifiers
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True, index=True)
    hostname: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Category keyword matched against CVE text: linux / windows / vmware / network / other
    device_type: Mapped[str] = mapped_column(String(100), nullable=False, default="other")

    # Hardware / vendor info
    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # OS fingerprint
    os_family: Mapped[str | None] = mapped_column(String(100), nullable=True)
    os_version: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Status — inactive assets are never correlated
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Free-text notes
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    alerts: Mapped[list["Alert"]] = relationship(  # noqa: F821
        "Alert", back_populates="asset", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Asset name={self.name!r} type={self.device_type!r}>"
