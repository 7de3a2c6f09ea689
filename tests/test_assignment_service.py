import asyncio
from datetime import datetime

import pytest
from sqlalchemy import update

from queuedesk.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from queuedesk.db.models import Desk, DeskStatus, Token, TokenStatus
from queuedesk.schemas.assignment import AssignmentOutcome
from queuedesk.schemas.desk import DeskUpdate
from queuedesk.services.assignment_service import AssignmentService
from queuedesk.services.desk_service import DeskService
from queuedesk.services.token_service import TokenService


@pytest.mark.asyncio
async def test_no_waiting_token_is_a_no_op(db_session, make_desk):
    await make_desk()

    result = await AssignmentService(db_session).assign_next()

    assert not result.assigned
    assert result.outcome == AssignmentOutcome.NO_WAITING_TOKEN


@pytest.mark.asyncio
async def test_no_free_desk_is_a_no_op(db_session, make_token):
    token = await make_token()

    result = await AssignmentService(db_session).assign_next()

    assert result.outcome == AssignmentOutcome.NO_FREE_DESK
    token = await TokenService(db_session).get_token(token.id)
    assert token.status == TokenStatus.WAITING


@pytest.mark.asyncio
async def test_oldest_token_goes_to_first_free_desk(db_session, make_token, make_desk, check_invariants):
    first_desk = await make_desk("Ann")
    second_desk = await make_desk("Ben")
    first = await make_token("First")
    second = await make_token("Second")

    service = AssignmentService(db_session)
    one = await service.assign_next()
    two = await service.assign_next()

    assert (one.token.id, one.desk.id) == (first.id, first_desk.id)
    assert (two.token.id, two.desk.id) == (second.id, second_desk.id)
    assert one.token.status == TokenStatus.ASSIGNED
    assert one.desk.status == DeskStatus.OCCUPIED
    assert one.desk.assigned_token_id == first.id
    assert one.token.assigned_at is not None
    await check_invariants()


@pytest.mark.asyncio
async def test_maintenance_and_inactive_desks_are_skipped(db_session, make_token, make_desk):
    desks = DeskService(db_session)
    maintenance = await make_desk("Maintenance")
    inactive = await make_desk("Inactive")
    open_desk = await make_desk("Open")
    await desks.update_desk(maintenance.id, DeskUpdate(status="maintenance"))
    await desks.update_desk(inactive.id, DeskUpdate(is_active=False))
    await make_token()

    result = await AssignmentService(db_session).assign_next()

    assert result.desk.id == open_desk.id


@pytest.mark.asyncio
async def test_fifo_follows_creation_time(db_session, make_token, make_desk):
    await make_desk()
    late = await make_token("Late")
    early = await make_token("Early")
    # Backdate the second token so it is the oldest in line
    await db_session.execute(
        update(Token)
        .where(Token.id == early.id)
        .values(created_at=datetime(2020, 1, 1))
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()

    result = await AssignmentService(db_session).assign_next()

    assert result.token.id == early.id
    assert (await TokenService(db_session).get_token(late.id)).status == TokenStatus.WAITING


@pytest.mark.asyncio
async def test_serve_two_tokens_through_one_desk(db_session, make_token, make_desk, check_invariants):
    desk = await make_desk()
    t1 = await make_token("T1")
    t2 = await make_token("T2")
    service = AssignmentService(db_session)
    tokens = TokenService(db_session)
    desks = DeskService(db_session)

    result = await service.assign_next()
    assert result.token.id == t1.id
    assert (await tokens.get_token(t2.id)).status == TokenStatus.WAITING
    await check_invariants()

    completed = await service.complete_token(t1.id)
    assert completed.status == TokenStatus.COMPLETED
    assert completed.assigned_desk_id is None
    assert completed.served_by_desk_id == desk.id
    assert completed.completed_at is not None
    freed = await desks.get_desk(desk.id)
    assert freed.status == DeskStatus.FREE
    assert freed.assigned_token_id is None
    assert freed.assigned_at is None
    assert freed.total_tokens_served == 1
    await check_invariants()

    result = await service.assign_next()
    assert (result.token.id, result.desk.id) == (t2.id, desk.id)
    await check_invariants()


@pytest.mark.asyncio
async def test_assign_all_drains_until_desks_run_out(db_session, make_token, make_desk, check_invariants):
    await make_desk()
    await make_desk()
    for name in ("A", "B", "C"):
        await make_token(name)

    results = await AssignmentService(db_session).assign_all()

    assert [result.assigned for result in results] == [True, True, False]
    assert results[-1].outcome == AssignmentOutcome.NO_FREE_DESK
    await check_invariants()


@pytest.mark.asyncio
async def test_stale_pass_loses_race_and_changes_nothing(session_factory, make_token, make_desk, check_invariants):
    await make_desk()
    token = await make_token()

    async with session_factory() as first, session_factory() as second:
        slow = AssignmentService(second)
        seen_token = await slow.oldest_waiting_token()
        seen_desk = await slow.first_free_desk()

        fast = await AssignmentService(first).assign_next()
        late = await slow.claim(seen_token, seen_desk)

    assert fast.assigned
    assert not late.assigned
    assert late.outcome == AssignmentOutcome.CONFLICT
    async with session_factory() as session:
        stored = await session.get(Token, token.id)
        assert stored.status == TokenStatus.ASSIGNED
        assert stored.version == 2
    await check_invariants()


@pytest.mark.asyncio
async def test_concurrent_passes_assign_exactly_once(session_factory, make_token, make_desk, check_invariants):
    await make_desk()
    await make_token()

    async def run_pass():
        async with session_factory() as session:
            return await AssignmentService(session).assign_next()

    results = await asyncio.gather(run_pass(), run_pass())

    assert sum(result.assigned for result in results) == 1
    loser = next(result for result in results if not result.assigned)
    assert loser.outcome in (
        AssignmentOutcome.CONFLICT,
        AssignmentOutcome.NO_FREE_DESK,
        AssignmentOutcome.NO_WAITING_TOKEN,
    )
    await check_invariants()


@pytest.mark.asyncio
async def test_complete_requires_assigned_token(db_session, make_token):
    token = await make_token()

    with pytest.raises(InvalidTransitionError):
        await AssignmentService(db_session).complete_token(token.id)


@pytest.mark.asyncio
async def test_complete_twice_does_not_double_count(db_session, make_token, make_desk):
    desk = await make_desk()
    token = await make_token()
    service = AssignmentService(db_session)
    await service.assign_next()
    await service.complete_token(token.id)

    with pytest.raises(InvalidTransitionError):
        await service.complete_token(token.id)
    assert (await DeskService(db_session).get_desk(desk.id)).total_tokens_served == 1


@pytest.mark.asyncio
async def test_complete_refuses_when_desk_points_elsewhere(db_session, make_token, make_desk):
    desk = await make_desk()
    token = await make_token()
    token_id = token.id
    service = AssignmentService(db_session)
    await service.assign_next()
    await db_session.execute(
        update(Desk)
        .where(Desk.id == desk.id)
        .values(status=DeskStatus.FREE, assigned_token_id=None)
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()

    # The failed completion rolls back and expires everything loaded in the session
    with pytest.raises(ConflictError):
        await service.complete_token(token_id)
    assert (await TokenService(db_session).get_token(token_id)).status == TokenStatus.ASSIGNED


@pytest.mark.asyncio
async def test_complete_for_desk(db_session, make_token, make_desk):
    desk = await make_desk()
    token = await make_token()
    service = AssignmentService(db_session)

    with pytest.raises(InvalidTransitionError):
        await service.complete_for_desk(desk.desk_number)

    await service.assign_next()
    completed = await service.complete_for_desk(desk.desk_number)
    assert completed.id == token.id
    assert completed.status == TokenStatus.COMPLETED

    with pytest.raises(NotFoundError):
        await service.complete_for_desk(99)


@pytest.mark.asyncio
async def test_reconcile_repairs_half_written_pairs(db_session, make_token, make_desk, check_invariants):
    healthy_desk = await make_desk("Healthy")
    orphan_desk = await make_desk("Occupied without token")
    free_desk = await make_desk("Never assigned")
    stray_desk = await make_desk("Stray pointer")
    healthy = await make_token("Healthy")
    service = AssignmentService(db_session)
    await service.assign_next()
    orphan = await make_token("Orphan")

    # Token assigned to a desk that never heard of it
    await db_session.execute(
        update(Token)
        .where(Token.id == orphan.id)
        .values(status=TokenStatus.ASSIGNED, assigned_desk_id=free_desk.id)
        .execution_options(synchronize_session=False)
    )
    # Desk holding a token that points somewhere else
    await db_session.execute(
        update(Desk)
        .where(Desk.id == orphan_desk.id)
        .values(status=DeskStatus.OCCUPIED, assigned_token_id=orphan.id)
        .execution_options(synchronize_session=False)
    )
    # Free desk with a leftover pointer
    await db_session.execute(
        update(Desk)
        .where(Desk.id == stray_desk.id)
        .values(assigned_token_id=healthy.id)
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()

    report = await service.reconcile()

    assert report.freed_desks == [orphan_desk.id]
    assert report.cleared_desks == [stray_desk.id]
    assert report.requeued_tokens == [orphan.id]
    assert report.skipped == 0
    tokens = TokenService(db_session)
    assert (await tokens.get_token(orphan.id)).status == TokenStatus.WAITING
    assert (await tokens.get_token(healthy.id)).assigned_desk_id == healthy_desk.id
    await check_invariants()

    assert (await service.reconcile()).repaired == 0
