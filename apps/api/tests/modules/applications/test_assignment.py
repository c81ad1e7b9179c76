"""
Tests for least-loaded officer assignment.
"""

from unittest.mock import AsyncMock, patch

import pytest

from visa_api.modules.applications.assignment import (
    find_officer_for_assignment,
    pick_least_loaded,
)
from visa_api.modules.users.models import UserRole


@pytest.fixture
def officers(make_user):
    return [
        make_user(role=UserRole.OFFICER, email="a@test.com", name="Officer A"),
        make_user(role=UserRole.OFFICER, email="b@test.com", name="Officer B"),
        make_user(role=UserRole.OFFICER, email="c@test.com", name="Officer C"),
    ]


class TestPickLeastLoaded:
    def test_picks_smallest_workload(self, officers):
        a, b, c = officers
        assert pick_least_loaded(officers, {a.id: 2, b.id: 1, c.id: 1}) is b

    def test_missing_workload_counts_as_zero(self, officers):
        a, b, c = officers
        assert pick_least_loaded(officers, {a.id: 3, b.id: 1}) is c

    def test_ties_go_to_first_officer(self, officers):
        assert pick_least_loaded(officers, {}) is officers[0]

    def test_no_officers(self):
        assert pick_least_loaded([], {}) is None


class TestFindOfficerForAssignment:
    @pytest.mark.asyncio
    async def test_uses_repository_workloads(self, mock_db, officers):
        a, b, c = officers
        with (
            patch("visa_api.modules.applications.assignment.UserRepository") as mock_users,
            patch("visa_api.modules.applications.assignment.repository") as mock_repo,
        ):
            mock_users.get_active_officers = AsyncMock(return_value=officers)
            mock_repo.get_officer_workloads = AsyncMock(return_value={a.id: 4, b.id: 0, c.id: 2})

            assert await find_officer_for_assignment(mock_db) is b
            mock_repo.get_officer_workloads.assert_called_once_with(
                mock_db, [a.id, b.id, c.id]
            )

    @pytest.mark.asyncio
    async def test_no_active_officers(self, mock_db):
        with (
            patch("visa_api.modules.applications.assignment.UserRepository") as mock_users,
            patch("visa_api.modules.applications.assignment.repository") as mock_repo,
        ):
            mock_users.get_active_officers = AsyncMock(return_value=[])
            mock_repo.get_officer_workloads = AsyncMock()

            assert await find_officer_for_assignment(mock_db) is None
            mock_repo.get_officer_workloads.assert_not_called()
