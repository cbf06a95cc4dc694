from __future__ import annotations
from seedledger.exceptions import InvalidInput

def apply_multi_sort(stmt, sort_expr: str | None, allowed: dict, default_clauses):
    """Apply multi-field sort to a SQLAlchemy select.
    sort_expr: comma-separated tokens, each optionally prefixed with '-'.
    allowed: mapping of field key -> column object.
    default_clauses: order_by clauses used when sort_expr is empty; also appended
    as tie breakers for deterministic paging.
    """
    if not sort_expr:
        return stmt.order_by(*default_clauses)
    clauses = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        col = allowed.get(key)
        if col is None:
            raise InvalidInput(f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.extend(default_clauses)
    return stmt.order_by(*clauses)
