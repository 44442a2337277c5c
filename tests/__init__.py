# tests/__init__.py

"""
Test suite of the Reselec API and client SDK.

- `conftest.py`: shared fixtures (in-memory database, seeded roles, users, HTTP clients).
- `domains/`: API tests per business domain.
- `client/`: SDK tests against mocked HTTP transports.
- `test_workflow.py`, `test_permissions.py`: unit tests of the shared pure modules.
"""

__title__ = "Reselec API Tests"
__all__ = []
