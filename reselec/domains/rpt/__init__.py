# reselec/domains/rpt/__init__.py

"""
'rpt' domain: read-only analytics over clients, equipment and interventions.
"""

__all__ = []
