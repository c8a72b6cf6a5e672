"""Access control: roles, ownership checks and the academic directory capability."""

from .decorators import api_actor_required
from .interface import AcademicDirectory
from .logics.policies import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, normalize_role
from .services.directory_service import SqlAcademicDirectory
from .services.permission_service import PermissionService

__all__ = [
    'AcademicDirectory',
    'PermissionService',
    'SqlAcademicDirectory',
    'api_actor_required',
    'normalize_role',
    'ROLE_ADMIN',
    'ROLE_STUDENT',
    'ROLE_TEACHER',
]
