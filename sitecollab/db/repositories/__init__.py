from sitecollab.db.repositories.user_repository import UserRepository
from sitecollab.db.repositories.project_repository import (
    ProjectRepository, ProjectPermissionRepository, ProjectVersionRepository
)
from sitecollab.db.repositories.page_repository import PageRepository

__all__ = [
    "UserRepository",
    "ProjectRepository",
    "ProjectPermissionRepository",
    "ProjectVersionRepository",
    "PageRepository"
]
