# flowengine/core/data.py
from __future__ import annotations

from typing import Any, Mapping, Optional

from flowengine.utils.errors import ConfigurationError


def select_training_data(
    use_normalized: Optional[bool],
    data: Mapping[str, Any],
) -> Any:
    """
    Pick the ``normalized`` variant when the flag is true, ``original`` otherwise.

    Raises ConfigurationError when the requested variant is not supplied.
    """
    variant = "normalized" if use_normalized is True else "original"

    selected = data.get(variant) if data is not None else None
    if selected is None:
        raise ConfigurationError(
            f"Training data variant '{variant}' requested but not supplied "
            f"(norm_data={use_normalized})"
        )

    return selected
