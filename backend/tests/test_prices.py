import pytest

from seedledger.exceptions import Conflict, Forbidden, InvalidInput, NotFound
from seedledger.models import GroupPrice, InternalPrice
from seedledger.services import item_types, parties, prices, records
from tests.test_utils_seed import make_group, make_member, make_seed_type, make_leaf_type


def _group_price(session, actor, group, item, price, kind='seed', **extra):
    return prices.create_price(session, actor, GroupPrice, dict(
        {'group_id': group.id, 'item_kind': kind, 'item_type_id': item.id, 'price': price}, **extra
    ))


def test_group_price_overrides_role_price(session, actors):
    group, other, seed = make_group(), make_group(), make_seed_type()
    _group_price(session, actors['Raden'], group, seed, 450)
    rec = records.create_record(session, actors['Ijo'], 'external-sale', {'owner_id': group.id, 'item_type_id': seed.id, 'quantity': 2})
    assert (rec.unit_price, rec.total_price) == (450, 900)
    # other groups keep the role price
    plain = records.create_record(session, actors['Ijo'], 'external-sale', {'owner_id': other.id, 'item_type_id': seed.id, 'quantity': 2})
    assert plain.unit_price == 200


def test_inactive_group_price_is_ignored(session, actors):
    group, leaf = make_group(), make_leaf_type()
    price = _group_price(session, actors['Raden'], group, leaf, 120, kind='leaf')
    prices.update_price(session, actors['Raden'], GroupPrice, price.id, {'is_active': False})
    rec = records.create_record(session, actors['Ultra'], 'external-leaf', {'owner_id': group.id, 'item_type_id': leaf.id, 'quantity': 1})
    assert rec.unit_price == 200
    prices.update_price(session, actors['Raden'], GroupPrice, price.id, {'is_active': True, 'price': 90})
    rec = records.create_record(session, actors['Ultra'], 'external-leaf', {'owner_id': group.id, 'item_type_id': leaf.id, 'quantity': 1})
    assert rec.unit_price == 90


def test_internal_price_role_row_beats_every_role_row(session, actors):
    member, seed = make_member(), make_seed_type()
    prices.create_price(session, actors['Raden'], InternalPrice, {'item_kind': 'seed', 'item_type_id': seed.id, 'price': 150})
    prices.create_price(session, actors['Raden'], InternalPrice, {'item_kind': 'seed', 'item_type_id': seed.id, 'price': 500, 'role': 'Ultra'})
    data = {'owner_id': member.id, 'item_type_id': seed.id, 'quantity': 1}
    assert records.create_record(session, actors['Ijo'], 'internal-sale', data).unit_price == 150
    assert records.create_record(session, actors['Ultra'], 'internal-sale', data).unit_price == 500
    assert prices.override_for(session, 'seed', seed.id, actors['Raden'].role) == 150


def test_internal_price_does_not_touch_external_records(session, actors):
    group, seed = make_group(), make_seed_type()
    prices.create_price(session, actors['Raden'], InternalPrice, {'item_kind': 'seed', 'item_type_id': seed.id, 'price': 1})
    rec = records.create_record(session, actors['Ijo'], 'external-sale', {'owner_id': group.id, 'item_type_id': seed.id, 'quantity': 1})
    assert rec.unit_price == 200


def test_only_raden_manages_prices(session, actors):
    group, seed = make_group(), make_seed_type()
    with pytest.raises(Forbidden):
        _group_price(session, actors['Ultra'], group, seed, 10)
    price = _group_price(session, actors['Raden'], group, seed, 10)
    with pytest.raises(Forbidden):
        prices.update_price(session, actors['Ultra'], GroupPrice, price.id, {'price': 11})
    with pytest.raises(Forbidden):
        prices.delete_price(session, actors['Ijo'], GroupPrice, price.id)


def test_price_validation_and_duplicates(session, actors):
    group, seed = make_group(), make_seed_type()
    raden = actors['Raden']
    with pytest.raises(InvalidInput):
        _group_price(session, raden, group, seed, -1)
    with pytest.raises(InvalidInput):
        prices.create_price(session, raden, GroupPrice, {'group_id': group.id, 'item_kind': 'bulb', 'item_type_id': seed.id, 'price': 1})
    with pytest.raises(NotFound):
        prices.create_price(session, raden, GroupPrice, {'group_id': 999999, 'item_kind': 'seed', 'item_type_id': seed.id, 'price': 1})
    with pytest.raises(InvalidInput):
        prices.create_price(session, raden, InternalPrice, {'item_kind': 'seed', 'item_type_id': seed.id, 'price': 1, 'role': 'Boss'})
    _group_price(session, raden, group, seed, 5)
    with pytest.raises(Conflict):
        _group_price(session, raden, group, seed, 6)
    every_role = prices.create_price(session, raden, InternalPrice, {'item_kind': 'seed', 'item_type_id': seed.id, 'price': 1})
    with pytest.raises(Conflict):
        prices.create_price(session, raden, InternalPrice, {'item_kind': 'seed', 'item_type_id': seed.id, 'price': 2, 'role': None})
    with pytest.raises(InvalidInput):
        prices.update_price(session, raden, InternalPrice, every_role.id, {})


def test_deleting_group_or_item_type_drops_its_prices(session, actors):
    group, seed, other_seed = make_group(), make_seed_type(), make_seed_type()
    raden = actors['Raden']
    by_group = _group_price(session, raden, group, seed, 5).id
    internal = prices.create_price(session, raden, InternalPrice, {'item_kind': 'seed', 'item_type_id': other_seed.id, 'price': 9}).id
    parties.delete_party(session, raden, parties.PARTY_MODELS['groups'], group.id)
    assert session.get(GroupPrice, by_group) is None
    item_types.delete_item_type(session, raden, item_types.get_item_type_model('seed'), other_seed.id)
    assert session.get(InternalPrice, internal) is None
    with pytest.raises(NotFound):
        prices.get_price(session, InternalPrice, internal)
