# reselec/domains/crm/__init__.py

"""
'crm' domain: client companies that own equipment.
"""

__all__ = []
