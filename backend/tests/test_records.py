from datetime import timedelta

import pytest
from sqlalchemy import select, func

from seedledger.exceptions import Forbidden, InsufficientQuota, InvalidInput, NotFound
from seedledger.models import AuditLog, ExternalSale
from seedledger.services import quota, records
from tests.test_utils_seed import (
    ensure_user, actor_of, unique, make_group, make_member, make_seed_type, make_leaf_type,
)
from seedledger.constants.roles import Role
from seedledger.time_utils import utcnow


def _sale(group, seed, quantity, **extra):
    return dict({'owner_id': group.id, 'item_type_id': seed.id, 'quantity': quantity}, **extra)


def _sales_for(session, group_id):
    return session.execute(
        select(func.count()).select_from(ExternalSale).where(ExternalSale.owner_id == group_id)
    ).scalar_one()


def test_weekly_limit_scenario(session, actors):
    group = make_group(unique('Tomato Seeds'), weekly_seed_limit=400)
    seed = make_seed_type()
    other_ijo = actor_of(ensure_user(f"{unique('ijo2')}@example.com", role=Role.IJO))

    first = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 350))
    assert first.unit_price == 200
    assert first.total_price == 70000
    assert quota.get_or_create_current_limit(session, group.id).remaining_limit == 50

    with pytest.raises(InsufficientQuota) as ei:
        records.create_record(session, other_ijo, 'external-sale', _sale(group, seed, 100))
    assert ei.value.remaining == 50
    assert _sales_for(session, group.id) == 1

    last = records.create_record(session, actors['Ultra'], 'external-sale', _sale(group, seed, 50))
    assert last.unit_price == 700
    row = quota.get_or_create_current_limit(session, group.id)
    assert row.remaining_limit == 0
    assert row.used_limit == 400
    assert first.weekly_limit_id == last.weekly_limit_id == row.id


def test_abu_cannot_create_but_lists_everything(session, actors):
    group, seed = make_group(), make_seed_type()
    rec = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 5))
    with pytest.raises(Forbidden):
        records.create_record(session, actors['Abu'], 'external-sale', _sale(group, seed, 5))
    page = records.list_records(session, actors['Abu'], 'external-sale', limit=200)
    assert rec.id in {r.id for r in page.rows}
    assert records.get_record(session, actors['Abu'], 'external-sale', rec.id).id == rec.id


def test_ijo_sees_only_own_records(session, actors):
    group, seed = make_group(), make_seed_type()
    mine = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 3))
    theirs = records.create_record(session, actors['Ultra'], 'external-sale', _sale(group, seed, 4))
    page = records.list_records(session, actors['Ijo'], 'external-sale', limit=200)
    ids = {r.id for r in page.rows}
    assert mine.id in ids and theirs.id not in ids
    assert all(r.created_by_user_id == actors['Ijo'].id for r in page.rows)
    with pytest.raises(NotFound):
        records.get_record(session, actors['Ijo'], 'external-sale', theirs.id)
    assert records.total_quantity(session, actors['Ijo'], 'external-sale') == 3


def test_ijo_edits_only_own_record(session, actors):
    group, seed = make_group(weekly_seed_limit=100), make_seed_type()
    other_ijo = actor_of(ensure_user(f"{unique('ijo3')}@example.com", role=Role.IJO))
    rec = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 60))
    with pytest.raises(Forbidden):
        records.update_record(session, other_ijo, 'external-sale', rec.id, {'quantity': 10})
    updated = records.update_record(session, actors['Ijo'], 'external-sale', rec.id, {'quantity': 40})
    assert updated.quantity == 40
    assert updated.total_price == 40 * 200
    assert quota.get_or_create_current_limit(session, group.id).remaining_limit == 60


def test_update_growth_is_quota_checked(session, actors):
    group, seed = make_group(weekly_seed_limit=100), make_seed_type()
    rec = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 80))
    with pytest.raises(InsufficientQuota):
        records.update_record(session, actors['Ijo'], 'external-sale', rec.id, {'quantity': 130})
    assert records.get_record(session, actors['Ijo'], 'external-sale', rec.id).quantity == 80
    records.update_record(session, actors['Ijo'], 'external-sale', rec.id, {'quantity': 100})
    assert quota.get_or_create_current_limit(session, group.id).remaining_limit == 0


def test_edit_reprices_with_editor_role(session, actors):
    group, seed = make_group(), make_seed_type()
    rec = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 10))
    assert rec.unit_price == 200
    updated = records.update_record(session, actors['Ultra'], 'external-sale', rec.id, {'quantity': 10})
    assert updated.unit_price == 700
    assert updated.total_price == 7000
    assert updated.created_by_user_id == actors['Ijo'].id


def test_moving_sale_between_groups_moves_quota(session, actors):
    a, b = make_group(weekly_seed_limit=100), make_group(weekly_seed_limit=100)
    seed = make_seed_type()
    rec = records.create_record(session, actors['Ultra'], 'external-sale', _sale(a, seed, 70))
    moved = records.update_record(session, actors['Ultra'], 'external-sale', rec.id, {'owner_id': b.id})
    assert moved.owner_id == b.id
    assert quota.get_or_create_current_limit(session, a.id).remaining_limit == 100
    row_b = quota.get_or_create_current_limit(session, b.id)
    assert row_b.remaining_limit == 30
    assert moved.weekly_limit_id == row_b.id


def test_delete_rules(session, actors):
    group, seed = make_group(weekly_seed_limit=100), make_seed_type()
    rec = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 30))
    with pytest.raises(Forbidden):
        records.delete_record(session, actors['Ijo'], 'external-sale', rec.id)
    with pytest.raises(Forbidden):
        records.delete_record(session, actors['Abu'], 'external-sale', rec.id)
    records.delete_record(session, actors['Ultra'], 'external-sale', rec.id)
    assert quota.get_or_create_current_limit(session, group.id).remaining_limit == 100
    with pytest.raises(NotFound):
        records.get_record(session, actors['Raden'], 'external-sale', rec.id)

    other = records.create_record(session, actors['Ultra'], 'external-sale', _sale(group, seed, 5))
    records.delete_record(session, actors['Raden'], 'external-sale', other.id)
    with pytest.raises(NotFound):
        records.delete_record(session, actors['Raden'], 'external-sale', other.id)


@pytest.mark.parametrize('quantity', [0, -3, 'abc', True, 2.5, None])
def test_invalid_quantity_rejected(session, actors, quantity):
    group, seed = make_group(), make_seed_type()
    with pytest.raises(InvalidInput):
        records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, quantity))
    assert _sales_for(session, group.id) == 0


def test_unknown_references(session, actors):
    group, seed = make_group(), make_seed_type()
    with pytest.raises(NotFound):
        records.create_record(session, actors['Ijo'], 'external-sale', {'owner_id': 999999, 'item_type_id': seed.id, 'quantity': 1})
    with pytest.raises(InvalidInput):
        records.create_record(session, actors['Ijo'], 'external-sale', {'owner_id': group.id, 'item_type_id': 999999, 'quantity': 1})
    with pytest.raises(NotFound):
        records.list_records(session, actors['Ijo'], 'wholesale')


def test_price_fields_in_payload_are_ignored(session, actors):
    group, seed = make_group(), make_seed_type()
    rec = records.create_record(
        session, actors['Ijo'], 'external-sale',
        _sale(group, seed, 2, unit_price=1, total_price=2),
    )
    assert (rec.unit_price, rec.total_price) == (200, 400)


def test_internal_and_leaf_kinds_skip_quota(session, actors):
    member, group = make_member(), make_group(weekly_seed_limit=10)
    seed, leaf = make_seed_type(), make_leaf_type()
    sale = records.create_record(session, actors['Ijo'], 'internal-sale', {'owner_id': member.id, 'item_type_id': seed.id, 'quantity': 500})
    assert sale.unit_price == 200
    leaf_rec = records.create_record(session, actors['Raden'], 'external-leaf', {'owner_id': group.id, 'item_type_id': leaf.id, 'quantity': 50})
    assert leaf_rec.unit_price == 200 and leaf_rec.total_price == 10000
    internal_leaf = records.create_record(session, actors['Ultra'], 'internal-leaf', {'owner_id': member.id, 'item_type_id': leaf.id, 'quantity': 3})
    assert internal_leaf.unit_price == 200
    assert 'weekly_limit_id' not in records.record_json('internal-sale', sale)
    with pytest.raises(Forbidden):
        records.create_record(session, actors['Abu'], 'internal-sale', {'owner_id': member.id, 'item_type_id': seed.id, 'quantity': 1})


def test_mutations_are_audited(session, actors):
    group, seed = make_group(), make_seed_type()
    rec = records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, 4))
    records.update_record(session, actors['Ultra'], 'external-sale', rec.id, {'quantity': 6})
    records.delete_record(session, actors['Raden'], 'external-sale', rec.id)
    logs = session.execute(
        select(AuditLog).where(AuditLog.entity == 'ExternalSale', AuditLog.entity_id == str(rec.id)).order_by(AuditLog.id)
    ).scalars().all()
    assert [log.action for log in logs] == ['RECORD.CREATE', 'RECORD.UPDATE', 'RECORD.DELETE']
    assert logs[0].actor_role == 'Ijo'
    assert logs[1].meta['changes']['quantity'] == {'before': 4, 'after': 6}
    assert logs[1].meta['changes']['unit_price'] == {'before': 200, 'after': 700}


def test_list_sorting_and_paging(session, actors):
    group, seed = make_group(), make_seed_type()
    for q in (3, 1, 2):
        records.create_record(session, actors['Ijo'], 'external-sale', _sale(group, seed, q))
    page = records.list_records(session, actors['Ijo'], 'external-sale', limit=2, offset=0, sort='quantity')
    assert page.limit == 2
    assert len(page.rows) == 2
    assert page.page_count == (page.total_count + 1) // 2
    quantities = [r.quantity for r in page.rows]
    assert quantities == sorted(quantities)
    with pytest.raises(InvalidInput):
        records.list_records(session, actors['Ijo'], 'external-sale', sort='password')


def test_growth_after_next_week_opened_spends_carry_once(session, actors):
    group, seed = make_group(weekly_seed_limit=400), make_seed_type()
    rec = records.create_record(session, actors['Ultra'], 'external-sale', _sale(group, seed, 350))
    this_week = quota.get_or_create_current_limit(session, group.id)
    next_week = quota.get_or_create_current_limit(session, group.id, utcnow() + timedelta(days=7))
    session.commit()
    assert next_week.carried_over_from_previous == 50

    records.update_record(session, actors['Ultra'], 'external-sale', rec.id, {'quantity': 400})
    session.refresh(this_week)
    session.refresh(next_week)
    assert this_week.used_limit == 350 and this_week.remaining_limit == 50
    assert next_week.used_limit == 50 and next_week.remaining_limit == 400

    # deleting hands the whole sale back to the newest week as carry-over
    records.delete_record(session, actors['Raden'], 'external-sale', rec.id)
    session.refresh(next_week)
    assert next_week.carried_over_from_previous == 450
    assert next_week.remaining_limit == 800
    assert next_week.total_limit - next_week.used_limit == next_week.remaining_limit


def test_list_filters_by_owner(session, actors):
    a, b, seed = make_group(), make_group(), make_seed_type()
    in_a = records.create_record(session, actors['Ultra'], 'external-sale', _sale(a, seed, 2))
    records.create_record(session, actors['Ultra'], 'external-sale', _sale(b, seed, 3))
    page = records.list_records(session, actors['Abu'], 'external-sale', limit=200, owner_id=a.id)
    assert [r.id for r in page.rows] == [in_a.id]
    assert page.total_count == 1
