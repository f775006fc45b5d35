"""ThreatPulse — vulnerability feed ingestion and asset correlation."""

__version__ = "0.1.0"
