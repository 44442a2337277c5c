# reselec/core/__init__.py

"""
Core building blocks shared by every domain.

- `config.py`: application settings (pydantic-settings).
- `database.py`: async engine and session management (SQLModel / SQLAlchemy asyncio).
- `security.py`: password hashing, JWT handling, current-user and permission dependencies.
- `dependencies.py`: dependency-injection helpers re-exported for routers.
- `permissions.py`: permission catalog, default roles and authorization checks.
- `crud_base.py`: generic async CRUD with filtering, search and paging.
- `pagination.py`: paged response schema and list query parameters.
- `tasks.py`: arq background tasks that are not tied to a domain.
"""

__title__ = "Reselec Core"
__all__ = []
