import pytest

from seedledger.constants.roles import Role
from seedledger.exceptions import InvalidInput
from seedledger.services.policy import price_for
from seedledger.services.pricing import resolve


@pytest.mark.parametrize('kind', ['seed', 'leaf'])
@pytest.mark.parametrize('role', list(Role))
def test_total_is_unit_times_quantity(kind, role):
    for q in (0, 1, 7, 350):
        price = resolve(kind, role, q)
        assert price.unit_price == price_for(kind, role)
        assert price.total_price == price.unit_price * q


def test_negative_quantity_rejected():
    with pytest.raises(InvalidInput):
        resolve('seed', Role.IJO, -1)


@pytest.mark.parametrize('bad', [True, 1.5, '3', None])
def test_non_integer_quantity_rejected(bad):
    with pytest.raises(InvalidInput):
        resolve('seed', Role.IJO, bad)
