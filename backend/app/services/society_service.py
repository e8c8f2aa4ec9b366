"""
Society structure: societies and their departments.

Thin CRUD plus the ownership checks other services rely on (who manages a
society, which department belongs where).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError, ConflictError, DepartmentNotFoundError, SocietyNotFoundError, ValidationError,
)
from app.core.logging_config import logger
from app.core.roles import Role
from app.models.society import Society, Department, SocietyCategory
from app.models.user import User
from app.services.audit_service import audit_service
from app.services.membership_service import membership_service


class SocietyService:

    async def get_society(self, db: AsyncSession, society_id: str) -> Society:
        society = await db.get(Society, str(society_id))
        if society is None:
            raise SocietyNotFoundError(str(society_id))
        return society

    async def get_department(self, db: AsyncSession, department_id: str, society_id: Optional[str] = None) -> Department:
        department = await db.get(Department, str(department_id))
        if department is None:
            raise DepartmentNotFoundError(str(department_id))
        if society_id and str(department.society_id) != str(society_id):
            raise ValidationError("Department does not belong to this society", field="department_id")
        return department

    def is_coordinator(self, society: Society, user: User) -> bool:
        return bool(society.faculty_coordinator_id) and str(society.faculty_coordinator_id) == str(user.id)

    async def require_society_manager(self, db: AsyncSession, user: User, society_id: str) -> Society:
        """Admin, the society's faculty coordinator, or an active core member of it"""
        society = await self.get_society(db, society_id)
        if user.role == Role.ADMIN or self.is_coordinator(society, user):
            return society

        membership = await membership_service.get_active_membership(db, user.id)
        if membership and membership.role == Role.CORE and str(membership.society_id) == str(society.id):
            return society

        raise AuthorizationError("You do not manage this society.")

    async def create_society(
        self,
        db: AsyncSession,
        faculty: User,
        name: str,
        description: Optional[str] = None,
        category: SocietyCategory = SocietyCategory.TECH,
        college_id: Optional[str] = None,
    ) -> Society:
        if faculty.role not in (Role.FACULTY, Role.ADMIN):
            raise AuthorizationError("Only faculty can create societies.")

        name = (name or "").strip()
        if not name:
            raise ValidationError("Society name is required", field="name")

        existing = await db.execute(select(Society.id).where(Society.name == name))
        if existing.scalar_one_or_none():
            raise ConflictError("A society with this name already exists.", code="SOCIETY_EXISTS")

        society = Society(
            name=name,
            description=description,
            category=SocietyCategory(category),
            college_id=college_id,
            faculty_coordinator_id=str(faculty.id) if faculty.role == Role.FACULTY else None,
        )
        db.add(society)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("A society with this name already exists.", code="SOCIETY_EXISTS")

        logger.info(f"[Society] {faculty.email} created society {society.name} ({society.id})")
        await audit_service.record(
            db, "SOCIETY_CREATED", actor=faculty, target_model="Society", target_id=society.id,
            metadata={"name": society.name, "category": society.category.value},
        )
        return society

    async def create_department(
        self,
        db: AsyncSession,
        actor: User,
        society_id: str,
        name: str,
        description: Optional[str] = None,
    ) -> Department:
        society = await self.require_society_manager(db, actor, society_id)

        name = (name or "").strip()
        if not name:
            raise ValidationError("Department name is required", field="name")

        department = Department(society_id=str(society.id), name=name, description=description)
        db.add(department)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("This society already has a department with that name.", code="DEPARTMENT_EXISTS")

        logger.info(f"[Society] Department {name} added to {society.name} by {actor.email}")
        await audit_service.record(
            db, "DEPARTMENT_CREATED", actor=actor, target_model="Department", target_id=department.id,
            metadata={"society_id": str(society.id), "name": name},
        )
        return department

    async def list_departments(self, db: AsyncSession, society_id: str) -> List[Dict[str, Any]]:
        """Departments with active member counts and their derived head"""
        result = await db.execute(
            select(Department).where(Department.society_id == str(society_id)).order_by(Department.created_at)
        )
        departments = result.scalars().all()
        counts = await membership_service.count_active_by_department(db, society_id)

        listing = []
        for department in departments:
            head = await membership_service.get_department_head(db, department.id)
            head_user = await db.get(User, head.user_id) if head else None
            listing.append({
                "department": department,
                "member_count": counts.get(str(department.id), 0),
                "head": head_user,
            })
        return listing


# Singleton instance
society_service = SocietyService()
