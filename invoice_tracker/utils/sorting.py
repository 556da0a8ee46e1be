from __future__ import annotations
from typing import List, Optional, Tuple
from flask import abort


def parse_sort(sort_expr: Optional[str]) -> List[Tuple[str, bool]]:
    """Split 'a,-b' into [('a', False), ('b', True)]; blank tokens are ignored."""
    fields = []
    for token in (sort_expr or '').split(','):
        token = token.strip()
        if token:
            fields.append((token.lstrip('-'), token.startswith('-')))
    return fields


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker, default=None):
    """Order a query by client-selected fields.

    allowed maps sort keys to columns; unknown keys abort with 400. tie_breaker
    is appended so paging is stable. Without sort_expr the default clauses are
    used, followed by the tie breaker in the same (descending) direction.
    """
    fields = parse_sort(sort_expr)
    if not fields:
        if default:
            return query.order_by(*default, tie_breaker.desc())
        return query.order_by(tie_breaker.asc())
    clauses = []
    for key, descending in fields:
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if descending else col.asc())
    return query.order_by(*clauses, tie_breaker.asc())
