"""Owner gating for administrative setters."""

from allowmint.governance.access import AccessControl

__all__ = ["AccessControl"]
