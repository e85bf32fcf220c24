"""Multi-tenant persistence and provisioning core."""

__version__ = "1.0.0"
