import pytest

from seedledger.constants.roles import Role, ROLE_ORDER
from seedledger.exceptions import Forbidden, InvalidInput
from seedledger.services.policy import (
    Actor, parse_role, price_for, price_for_seed, price_for_leaf,
    can_create, can_edit, can_delete, sees_only_own_records, assert_role_at_least,
)


def test_role_order_is_total():
    assert [r.value for r in ROLE_ORDER] == ['Abu', 'Ijo', 'Ultra', 'Raden']
    assert Role.RADEN.at_least(Role.ULTRA)
    assert Role.IJO.at_least(Role.IJO)
    assert not Role.ABU.at_least(Role.IJO)


@pytest.mark.parametrize('role,seed', [
    (Role.ABU, 100), (Role.IJO, 200), (Role.ULTRA, 700), (Role.RADEN, 700),
])
def test_seed_prices(role, seed):
    assert price_for_seed(role) == seed
    assert price_for('seed', role.value) == seed


def test_leaf_price_is_flat():
    assert {price_for_leaf(r) for r in Role} == {200}


def test_unknown_role_and_kind_rejected():
    with pytest.raises(InvalidInput):
        parse_role('Admin')
    with pytest.raises(InvalidInput):
        price_for('flower', Role.IJO)


def test_can_create_requires_ijo():
    assert can_create(Role.ABU) is False
    assert all(can_create(r) for r in (Role.IJO, Role.ULTRA, Role.RADEN))


def test_can_edit_matrix():
    assert can_edit(Role.ABU, 'u1', 'u1') is False
    assert can_edit(Role.IJO, 'u1', 'u1') is True
    assert can_edit(Role.IJO, 'u1', 'u2') is False
    assert can_edit(Role.ULTRA, 'u1', 'u2') is True
    assert can_edit(Role.RADEN, 'u1', 'u2') is True


def test_ownership_does_not_grant_delete():
    assert can_delete(Role.IJO) is False
    assert can_delete(Role.ABU) is False
    assert can_delete(Role.ULTRA) and can_delete(Role.RADEN)


def test_only_ijo_is_restricted_to_own_records():
    assert [r for r in Role if sees_only_own_records(r)] == [Role.IJO]


def test_assert_role_at_least_message():
    with pytest.raises(Forbidden) as ei:
        assert_role_at_least(Actor('x', Role.IJO), Role.ULTRA, 'roll over')
    assert 'Ultra' in ei.value.message
    assert ei.value.status_code == 403
