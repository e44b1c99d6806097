"""Вычисление прав доступа к проекту.

Чистые функции над уже загруженными данными: используются и HTTP-обработчиками,
и рукопожатием постоянного соединения.
"""

import enum
import hmac
from typing import Iterable, Optional

from sitecollab.db.models.project import LinkAccess
from sitecollab.domains.projects.entities import Project, ProjectPermission


class AccessLevel(enum.IntEnum):
    NONE = 0
    READ = 1
    WRITE = 2


def _link_token_matches(project: Project, link_token: Optional[str]) -> bool:
    if not link_token or not project.link_token:
        return False
    return hmac.compare_digest(link_token, project.link_token)


def resolve_access(
    project: Project,
    user_id: Optional[str],
    link_token: Optional[str] = None,
    permissions: Optional[Iterable[ProjectPermission]] = None,
    verify_link_token: bool = True,
) -> AccessLevel:
    """Итоговый уровень доступа пользователя к проекту.

    ``permissions`` по умолчанию берутся из ``project.permissions``; вызывающий
    код может передать заранее найденную строку права для одного пользователя.
    При ``verify_link_token=False`` доступ по ссылке выдается без сверки токена.
    """
    if user_id and project.is_owner(user_id):
        return AccessLevel.WRITE

    rows = project.permissions if permissions is None else permissions
    for row in rows:
        if user_id and row.user_id == user_id:
            return AccessLevel.WRITE if row.grants_write else AccessLevel.READ

    if project.link_access is LinkAccess.NONE:
        return AccessLevel.NONE

    if verify_link_token and not _link_token_matches(project, link_token):
        return AccessLevel.NONE

    if project.link_access is LinkAccess.WRITE:
        return AccessLevel.WRITE
    return AccessLevel.READ


def can_read(project: Project, user_id: Optional[str], link_token: Optional[str] = None, **kwargs) -> bool:
    return resolve_access(project, user_id, link_token, **kwargs) >= AccessLevel.READ


def can_write(project: Project, user_id: Optional[str], link_token: Optional[str] = None, **kwargs) -> bool:
    return resolve_access(project, user_id, link_token, **kwargs) >= AccessLevel.WRITE
