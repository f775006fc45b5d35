"""SQLAlchemy ORM models."""

from threatpulse.models.alert import Alert
from threatpulse.models.asset import Asset
from threatpulse.models.base import Base
from threatpulse.models.cve import Cve

__all__ = ["Base", "Alert", "Asset", "Cve"]
