"""
Unit Tests for the platform role gates
"""
import pytest

from app.core.exceptions import AuthorizationError
from app.core.roles import Role
from app.modules.auth.dependencies import get_current_admin, get_current_faculty, require_roles


class TestRequireRoles:

    async def test_allowed_role_passes_through(self, faculty_user):
        gate = require_roles(Role.FACULTY)

        assert await gate(current_user=faculty_user) is faculty_user

    async def test_other_role_rejected_with_role_names(self, test_user):
        gate = require_roles(Role.FACULTY, Role.ADMIN)

        with pytest.raises(AuthorizationError) as exc_info:
            await gate(current_user=test_user)

        assert exc_info.value.message == "This action requires admin, faculty access"
        assert exc_info.value.status_code == 403

    async def test_society_standing_is_not_a_platform_role(self, core_user):
        with pytest.raises(AuthorizationError):
            await get_current_faculty(current_user=core_user)


class TestPlatformGates:

    async def test_admin_gate(self, admin_user, faculty_user):
        assert await get_current_admin(current_user=admin_user) is admin_user
        with pytest.raises(AuthorizationError):
            await get_current_admin(current_user=faculty_user)

    async def test_admin_passes_faculty_gate(self, admin_user):
        assert await get_current_faculty(current_user=admin_user) is admin_user
