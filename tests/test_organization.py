"""Tests for the organization repository.

Tests cover:
- Parent secretariat validation on create and move
- Cycle prevention in the department hierarchy
- Ancestor walking
- Memberships
"""

from uuid import uuid4

import pytest

from softagon.db.models import Department, Institution, UserDepartment
from softagon.repositories import (
    DepartmentCycleError,
    InvalidParentError,
    OrganizationRepository,
    RecordNotFoundError,
)
from tests.factories import create_department, make_lookup, make_result, make_session


@pytest.fixture
def hierarchy():
    """Secretariat tree: root -> middle -> leaf, plus a plain department."""
    root = create_department(is_secretariat=True, name="Rectorate")
    middle = create_department(
        is_secretariat=True, parent_secretariat_id=root.department_id, name="Secretariat A"
    )
    leaf = create_department(parent_secretariat_id=middle.department_id, name="Accounting")
    plain = create_department(name="Library")
    return {"root": root, "middle": middle, "leaf": leaf, "plain": plain}


def session_for(hierarchy, *results):
    return make_session(*results, get=make_lookup(*hierarchy.values()))


class TestCreateDepartment:
    """Tests for create_department."""

    @pytest.mark.asyncio
    async def test_top_level_department(self):
        session = make_session()
        institution_id = uuid4()

        department = await OrganizationRepository(session).create_department(
            institution_id=institution_id, name="Rectorate", is_secretariat=True
        )

        assert isinstance(department, Department)
        assert department.institution_id == institution_id
        assert department.parent_secretariat_id is None
        assert department.is_secretariat is True

    @pytest.mark.asyncio
    async def test_under_secretariat(self, hierarchy):
        session = session_for(hierarchy)
        parent_id = hierarchy["middle"].department_id

        department = await OrganizationRepository(session).create_department(
            institution_id=uuid4(), name="Payroll", parent_secretariat_id=parent_id
        )

        assert department.parent_secretariat_id == parent_id

    @pytest.mark.asyncio
    async def test_parent_must_be_secretariat(self, hierarchy):
        session = session_for(hierarchy)

        with pytest.raises(InvalidParentError) as exc_info:
            await OrganizationRepository(session).create_department(
                institution_id=uuid4(),
                name="Payroll",
                parent_secretariat_id=hierarchy["plain"].department_id,
            )

        assert "not a secretariat" in exc_info.value.reason
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_parent_must_exist(self, hierarchy):
        session = session_for(hierarchy)

        with pytest.raises(InvalidParentError):
            await OrganizationRepository(session).create_department(
                institution_id=uuid4(), name="Payroll", parent_secretariat_id=uuid4()
            )

    @pytest.mark.asyncio
    async def test_generic_create_validates_parent(self, hierarchy):
        session = session_for(hierarchy)

        with pytest.raises(InvalidParentError):
            await OrganizationRepository(session).create(
                institution_id=uuid4(),
                name="Payroll",
                parent_secretariat_id=hierarchy["leaf"].department_id,
            )


class TestMoveDepartment:
    """Tests for move_department and cycle prevention."""

    @pytest.mark.asyncio
    async def test_move_under_other_secretariat(self, hierarchy):
        session = session_for(hierarchy)
        plain = hierarchy["plain"]

        await OrganizationRepository(session).move_department(
            plain.department_id, hierarchy["root"].department_id
        )

        assert plain.parent_secretariat_id == hierarchy["root"].department_id

    @pytest.mark.asyncio
    async def test_detach(self, hierarchy):
        session = session_for(hierarchy)
        leaf = hierarchy["leaf"]

        await OrganizationRepository(session).move_department(leaf.department_id, None)

        assert leaf.parent_secretariat_id is None

    @pytest.mark.asyncio
    async def test_own_parent_rejected(self, hierarchy):
        session = session_for(hierarchy)
        middle_id = hierarchy["middle"].department_id

        with pytest.raises(DepartmentCycleError):
            await OrganizationRepository(session).move_department(middle_id, middle_id)

    @pytest.mark.asyncio
    async def test_descendant_parent_rejected(self, hierarchy):
        """Moving the root under its own child would close a cycle."""
        session = session_for(hierarchy)
        root = hierarchy["root"]

        with pytest.raises(DepartmentCycleError) as exc_info:
            await OrganizationRepository(session).move_department(
                root.department_id, hierarchy["middle"].department_id
            )

        assert exc_info.value.department_id == root.department_id
        assert root.parent_secretariat_id is None

    @pytest.mark.asyncio
    async def test_move_missing_department(self, hierarchy):
        session = session_for(hierarchy)
        with pytest.raises(RecordNotFoundError):
            await OrganizationRepository(session).move_department(uuid4(), None)

    @pytest.mark.asyncio
    async def test_update_routes_parent_change(self, hierarchy):
        session = session_for(hierarchy)
        root = hierarchy["root"]

        with pytest.raises(DepartmentCycleError):
            await OrganizationRepository(session).update(
                root.department_id, parent_secretariat_id=hierarchy["middle"].department_id
            )

    @pytest.mark.asyncio
    async def test_unmarking_secretariat_with_children_rejected(self, hierarchy):
        middle = hierarchy["middle"]
        session = session_for(hierarchy, make_result(scalars=[hierarchy["leaf"]]))

        with pytest.raises(InvalidParentError):
            await OrganizationRepository(session).update(
                middle.department_id, is_secretariat=False
            )

        assert middle.is_secretariat is True


class TestAncestors:
    """Tests for walking the hierarchy upward."""

    @pytest.mark.asyncio
    async def test_ancestor_ids_nearest_first(self, hierarchy):
        session = session_for(hierarchy)

        ids = await OrganizationRepository(session).ancestor_ids(hierarchy["leaf"].department_id)

        assert ids == [hierarchy["middle"].department_id, hierarchy["root"].department_id]

    @pytest.mark.asyncio
    async def test_ancestors_of_root_is_empty(self, hierarchy):
        session = session_for(hierarchy)
        assert await OrganizationRepository(session).ancestors(
            hierarchy["root"].department_id
        ) == []

    @pytest.mark.asyncio
    async def test_existing_loop_terminates(self):
        a = create_department(is_secretariat=True)
        b = create_department(is_secretariat=True, parent_secretariat_id=a.department_id)
        a.parent_secretariat_id = b.department_id
        session = make_session(get=make_lookup(a, b))

        ids = await OrganizationRepository(session).ancestor_ids(a.department_id)

        assert ids == [b.department_id]


class TestMemberships:
    """Tests for institutions and department memberships."""

    @pytest.mark.asyncio
    async def test_create_institution(self):
        session = make_session()

        institution = await OrganizationRepository(session).create_institution(
            "Universidade Federal", acronym="UF"
        )

        assert isinstance(institution, Institution)
        assert institution.acronym == "UF"

    @pytest.mark.asyncio
    async def test_add_member_defaults_to_member_role(self):
        session = make_session()
        department_id, user_id = uuid4(), uuid4()

        membership = await OrganizationRepository(session).add_member(department_id, user_id)

        assert isinstance(membership, UserDepartment)
        assert membership.role == "member"
        assert membership.department_id == department_id

    @pytest.mark.asyncio
    async def test_remove_member(self):
        session = make_session(make_result(rowcount=1))
        assert await OrganizationRepository(session).remove_member(uuid4(), uuid4()) is True

    @pytest.mark.asyncio
    async def test_get_membership_missing(self):
        session = make_session(make_result(scalar=None))
        with pytest.raises(RecordNotFoundError):
            await OrganizationRepository(session).get_membership(uuid4(), uuid4())
