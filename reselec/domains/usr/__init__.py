# reselec/domains/usr/__init__.py

"""
'usr' domain: sections, users, roles, permissions and authentication.

- `models.py`: SQLModel tables (sections, permissions, role_permissions, roles, users).
- `schemas.py`: request/response schemas, including the structured role embedded in profiles.
- `crud.py`: async CRUD and authentication helpers.
- `seeds.py`: idempotent seeding of the permission catalog and default roles.
- `routers.py`: /auth, /sections, /permissions, /roles and /users endpoints.
"""

__all__ = []
