from sitecollab.db.models.user import User
from sitecollab.db.models.project import (
    Project, ProjectPermission, ProjectVersion, LinkAccess, PermissionLevel
)
from sitecollab.db.models.page import Page

__all__ = [
    "User",
    "Project",
    "ProjectPermission",
    "ProjectVersion",
    "LinkAccess",
    "PermissionLevel",
    "Page"
]
