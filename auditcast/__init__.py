"""Tenant-isolated change notification and audit trail service."""

__version__ = "0.1.0"
