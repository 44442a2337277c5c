# tests/domains/__init__.py

"""
API tests grouped by business domain: auth and usr, crm (clients), fms (equipment),
itv (interventions) and rpt (analytics).
"""

__title__ = "Reselec Domain Tests"
__all__ = []
