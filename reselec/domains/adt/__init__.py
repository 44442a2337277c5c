# reselec/domains/adt/__init__.py

"""
'adt' domain: audit trail of the changes made through the API.

- `models.py`: the audit_logs table and the recorded actions.
- `crud.py`: recording entries and listing them.
- `routers.py`: /audit-logs endpoints (Admin only).
"""

__all__ = []
