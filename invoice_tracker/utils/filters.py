from __future__ import annotations
from typing import Any, Dict, Mapping
from flask import abort

# Filter values meaning "no filter" (list screens send 'all' for unrestricted dropdowns)
NO_FILTER_VALUES = ('', 'all')


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Mapping[str, Any]):
    """Generic filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': type/func, 'validate': callable(optional) } }
    Params that are absent, None, empty or 'all' are skipped.
    """
    for name, meta in specs.items():
        val = params.get(name)
        if val is None:
            continue
        if isinstance(val, str):
            val = val.strip()
            if val.lower() in NO_FILTER_VALUES:
                continue
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        query = meta['op'](query, val)
    return query
