# reselec/domains/fms/__init__.py

"""
'fms' domain: equipment owned by clients and serviced through interventions.
"""

__all__ = []
