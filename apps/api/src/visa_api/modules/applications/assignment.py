"""
Officer Assignment

Spreads newly submitted applications across active officers by current
workload: the number of applications assigned to them that are SUBMITTED
or UNDER_REVIEW. The least-loaded officer wins; ties go to whichever
officer comes first in enumeration order.

Assignment is best-effort. With no active officers the application is
submitted unassigned.
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.modules.applications import repository
from visa_api.modules.users.models import User
from visa_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


def pick_least_loaded(officers: Sequence[User], workloads: dict[UUID, int]) -> User | None:
    """
    Choose the officer with the smallest workload.

    Args:
        officers: Candidates in enumeration order
        workloads: Active application count per officer id (missing means 0)

    Returns:
        The chosen officer, or None if there are no candidates
    """
    chosen: User | None = None
    chosen_load = 0

    for officer in officers:
        load = workloads.get(officer.id, 0)
        # Strict comparison keeps the first-seen officer on ties
        if chosen is None or load < chosen_load:
            chosen = officer
            chosen_load = load

    return chosen


async def find_officer_for_assignment(db: AsyncSession) -> User | None:
    """Load active officers and their workloads, then pick one."""
    officers = await UserRepository.get_active_officers(db)
    if not officers:
        logger.warning("No active officers available - application will be left unassigned")
        return None

    workloads = await repository.get_officer_workloads(db, [o.id for o in officers])
    officer = pick_least_loaded(officers, workloads)

    if officer is not None:
        logger.info(
            f"Selected officer {officer.id} with workload {workloads.get(officer.id, 0)} "
            f"from {len(officers)} active officer(s)"
        )
    return officer
