# flowengine/core/params.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from flowengine import logs


def merge_with_defaults(
    user_params: Optional[Mapping[str, Any]],
    default_params: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Resolve one complete hyperparameter set.

    Contract:
    - every key of ``default_params`` is present in the result
    - same-named keys from ``user_params`` win
    - keys only in ``user_params`` pass through (lenient policy)
    - ``None`` on either side is treated as an empty mapping
    - inputs are never mutated
    """
    merged: Dict[str, Any] = dict(default_params or {})

    if not user_params:
        return merged

    unknown = sorted(set(user_params) - set(merged))
    if unknown:
        logs.debug(
            f"[Params] passing through undeclared hyperparameters: {', '.join(unknown)}"
        )

    merged.update(user_params)
    return merged
