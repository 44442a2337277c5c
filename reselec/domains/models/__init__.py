# reselec/domains/models/__init__.py

"""
Imports every table model so that SQLModel.metadata and the relationship
registry are complete (table creation, mapper configuration, tests).
"""

from reselec.domains.usr.models import RolePermission, Section, Permission, Role, User
from reselec.domains.crm.models import Client
from reselec.domains.fms.models import Equipment
from reselec.domains.itv.models import Intervention, StatusHistory, Diagnostic, Planification, QualityControl
from reselec.domains.adt.models import AuditLog

__all__ = [
    "RolePermission",
    "Section",
    "Permission",
    "Role",
    "User",
    "Client",
    "Equipment",
    "Intervention",
    "StatusHistory",
    "Diagnostic",
    "Planification",
    "QualityControl",
    "AuditLog",
]
