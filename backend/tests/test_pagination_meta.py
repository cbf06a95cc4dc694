import pytest

from seedledger.config.pagination import normalize_pagination, MAX_LIMIT
from seedledger.utils.listing import Page, build_list_payload


def test_normalize_clamps():
    assert normalize_pagination(None, None) == (50, 0)
    assert normalize_pagination('5000', '-3') == (MAX_LIMIT, 0)
    assert normalize_pagination('0', '7') == (1, 7)
    with pytest.raises(ValueError):
        normalize_pagination('ten', None)


def test_payload_shape():
    page = Page(rows=[1, 2], total_count=5, limit=2, offset=0)
    body = build_list_payload(page, lambda r: {'v': r})
    assert body['data'] == [{'v': 1}, {'v': 2}]
    assert body['pagination'] == {'total': 5, 'limit': 2, 'offset': 0, 'returned': 2, 'page_count': 3}
    assert Page(rows=[], total_count=0, limit=10, offset=0).page_count == 0
