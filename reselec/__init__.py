# reselec/__init__.py

"""
ETS Reselec maintenance management API package.

The package is split into:
- `core`: settings, database access, security and shared CRUD helpers.
- `domains`: one sub-package per business domain (usr, crm, fms, itv, rpt).
- `client`: an async SDK used by front-ends and scripts to talk to the API.

Nothing heavy is imported here so that `reselec.client` can be used without
backend settings being present.
"""

APP_NAME = "ETS Reselec API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # common prefix for every API route (applied in main.py)

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Industrial equipment maintenance management (clients, equipment, interventions) API backend."
__all__ = []
