"""Organization structure: institutions, departments and memberships.

Departments form a tree under secretariats. The database forbids a
department being its own parent; this repository also rejects parents that
are not secretariats and moves that would close a longer cycle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select

from softagon.db.models import Department, Institution, UserDepartment
from softagon.db.models.base import DEFAULT_MEMBERSHIP_ROLE
from softagon.repositories.base import RecordNotFoundError, Repository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class DepartmentCycleError(Exception):
    """Raised when a parent assignment would make a department its own ancestor."""

    def __init__(self, department_id: UUID, parent_id: UUID) -> None:
        self.department_id = department_id
        self.parent_id = parent_id
        super().__init__(
            f"Department {parent_id} cannot be the parent of {department_id}: "
            f"it would create a cycle"
        )


class InvalidParentError(Exception):
    """Raised when a department's parent is missing or not a secretariat."""

    def __init__(self, parent_id: UUID, reason: str) -> None:
        self.parent_id = parent_id
        self.reason = reason
        super().__init__(f"Invalid parent secretariat {parent_id}: {reason}")


class OrganizationRepository(Repository[Department]):
    """Departments, plus the institutions and memberships around them.

    Generic CRUD on this repository targets departments; institutions and
    memberships are reachable through `institutions` and `memberships`.
    """

    model = Department

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.institutions: Repository[Institution] = Repository(session, Institution)
        self.memberships: Repository[UserDepartment] = Repository(session, UserDepartment)

    async def create_institution(self, name: str, acronym: str | None = None) -> Institution:
        return await self.institutions.create(name=name, acronym=acronym)

    async def _validate_parent(self, parent_id: UUID) -> Department:
        parent = await self.get(parent_id)
        if parent is None:
            raise InvalidParentError(parent_id, "department does not exist")
        if not parent.is_secretariat:
            raise InvalidParentError(parent_id, "department is not a secretariat")
        return parent

    async def ancestor_ids(self, department_id: UUID) -> list[UUID]:
        """Parent chain of a department, nearest first."""
        ids: list[UUID] = []
        seen = {department_id}
        current = await self.get_or_raise(department_id)
        while current.parent_secretariat_id is not None:
            parent_id = current.parent_secretariat_id
            if parent_id in seen:
                # Existing data already contains a loop; stop walking.
                logger.error(
                    "Department hierarchy loop detected",
                    extra={"department_id": str(department_id), "at": str(parent_id)},
                )
                break
            seen.add(parent_id)
            ids.append(parent_id)
            current = await self.get_or_raise(parent_id)
        return ids

    async def ancestors(self, department_id: UUID) -> list[Department]:
        """Parent chain of a department as records, nearest first."""
        return [await self.get_or_raise(i) for i in await self.ancestor_ids(department_id)]

    async def children(self, department_id: UUID) -> Sequence[Department]:
        """Departments whose parent secretariat is `department_id`."""
        query = (
            select(Department)
            .where(Department.parent_secretariat_id == department_id)
            .order_by(Department.name)
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def list_for_institution(self, institution_id: UUID) -> Sequence[Department]:
        query = (
            select(Department)
            .where(Department.institution_id == institution_id)
            .order_by(Department.name)
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def create_department(
        self,
        *,
        institution_id: UUID,
        name: str,
        is_secretariat: bool = False,
        parent_secretariat_id: UUID | None = None,
    ) -> Department:
        """Create a department, validating its parent secretariat.

        Raises:
            InvalidParentError: If the parent is missing or not a secretariat.
        """
        if parent_secretariat_id is not None:
            await self._validate_parent(parent_secretariat_id)
        return await super().create(
            institution_id=institution_id,
            name=name,
            is_secretariat=is_secretariat,
            parent_secretariat_id=parent_secretariat_id,
        )

    async def create(self, **values: Any) -> Department:
        """Alias of create_department()."""
        return await self.create_department(**values)

    async def move_department(
        self,
        department_id: UUID,
        parent_secretariat_id: UUID | None,
    ) -> Department:
        """Attach a department to a new parent secretariat (None detaches it).

        Raises:
            RecordNotFoundError: If the department does not exist.
            DepartmentCycleError: If the parent is the department or one of its descendants.
            InvalidParentError: If the parent is missing or not a secretariat.
        """
        await self.get_or_raise(department_id)

        if parent_secretariat_id is not None:
            if parent_secretariat_id == department_id:
                raise DepartmentCycleError(department_id, parent_secretariat_id)
            await self._validate_parent(parent_secretariat_id)
            if department_id in await self.ancestor_ids(parent_secretariat_id):
                raise DepartmentCycleError(department_id, parent_secretariat_id)

        department = await super().update(
            department_id, parent_secretariat_id=parent_secretariat_id
        )
        logger.info(
            "Department moved",
            extra={
                "department_id": str(department_id),
                "parent_secretariat_id": str(parent_secretariat_id),
            },
        )
        return department

    async def update(self, record_id: Any, **values: Any) -> Department:
        """Update a department; parent changes go through move_department().

        Raises:
            InvalidParentError: If un-marking a secretariat that still has children.
        """
        if "parent_secretariat_id" in values:
            department = await self.move_department(
                record_id, values.pop("parent_secretariat_id")
            )
            if not values:
                return department
        if values.get("is_secretariat") is False and await self.children(record_id):
            raise InvalidParentError(record_id, "secretariat still has child departments")
        return await super().update(record_id, **values)

    async def add_member(
        self,
        department_id: UUID,
        user_id: UUID,
        role: str = DEFAULT_MEMBERSHIP_ROLE,
    ) -> UserDepartment:
        """Add a user to a department.

        Raises:
            sqlalchemy.exc.IntegrityError: If the user is already a member.
        """
        return await self.memberships.create(
            department_id=department_id, user_id=user_id, role=role
        )

    async def remove_member(self, department_id: UUID, user_id: UUID) -> bool:
        stmt = delete(UserDepartment).where(
            UserDepartment.department_id == department_id,
            UserDepartment.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_members(self, department_id: UUID) -> Sequence[UserDepartment]:
        return await self.memberships.list(department_id=department_id, limit=None)

    async def get_membership(self, department_id: UUID, user_id: UUID) -> UserDepartment:
        """Get a user's membership in a department.

        Raises:
            RecordNotFoundError: If the user is not a member.
        """
        query = select(UserDepartment).where(
            UserDepartment.department_id == department_id,
            UserDepartment.user_id == user_id,
        )
        result = await self._session.execute(query)
        membership = result.scalar_one_or_none()
        if membership is None:
            raise RecordNotFoundError("UserDepartment", (department_id, user_id))
        return membership
