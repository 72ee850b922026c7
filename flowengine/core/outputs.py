# flowengine/core/outputs.py
"""
Output Envelope Builders (FINAL / FROZEN)

One builder per stage family. Every wrapper returns exactly one envelope,
and later stages only ever consume envelopes, never raw engine results.

Contract:
- builders are pure constructors: no validation, no computation
- invariant fields are always present
- optional fields are ABSENT (no key) when unset
  (unset == None or an empty dict / list / tuple / set)
- plain dicts are copied into read-only mappings, at every nesting level;
  lists, DataFrames and fitted models are stored by reference
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional, Sequence

OPTIONAL_UNSET_CONTAINERS = (dict, list, tuple, set, frozenset)


class OutputEnvelope(Mapping[str, Any]):
    """
    Read-only mapping tagged with its stage family.

    Consumers test presence (``"params" in env``), never null-check.
    Attribute access is a convenience for invariant fields.
    """

    __slots__ = ("_family", "_fields")

    def __init__(self, family: str, fields: Mapping[str, Any]):
        object.__setattr__(self, "_family", family)
        object.__setattr__(self, "_fields", dict(fields))

    @property
    def family(self) -> str:
        return self._family

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        try:
            return self._fields[key]
        except KeyError:
            raise AttributeError(
                f"{self._family} envelope has no field '{key}'"
            ) from None

    def __setattr__(self, key, value):
        raise AttributeError("OutputEnvelope is immutable")

    def __reduce__(self):
        return (OutputEnvelope, (self._family, self._fields))

    def __repr__(self) -> str:
        return f"OutputEnvelope({self._family}, fields={list(self._fields)})"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._fields)


class FrozenMapping(Mapping[str, Any]):
    """
    Read-only copy of a plain dict nested inside an envelope.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]):
        object.__setattr__(self, "_data", dict(data))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __setattr__(self, key, value):
        raise AttributeError("FrozenMapping is immutable")

    def __reduce__(self):
        return (FrozenMapping, (self._data,))

    def __repr__(self) -> str:
        return f"FrozenMapping({self._data!r})"


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return FrozenMapping({k: _freeze(v) for k, v in value.items()})
    return value


def _is_unset(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (*OPTIONAL_UNSET_CONTAINERS, FrozenMapping)) and len(value) == 0:
        return True
    return False


def _build(family: str, base: Dict[str, Any], **optional: Any) -> OutputEnvelope:
    fields = {key: _freeze(value) for key, value in base.items()}
    for key, value in optional.items():
        if not _is_unset(value):
            fields[key] = _freeze(value)
    return OutputEnvelope(family, fields)


# --------------------------------------------------
# split
# --------------------------------------------------
def initialize_output_split(
    split_type: str,
    splits: Mapping[str, Any],
    seed: Optional[int],
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    return _build(
        "split",
        {"split_type": split_type, "splits": splits, "seed": seed},
        params=params,
        specific_output=specific_output,
    )


# --------------------------------------------------
# train
# --------------------------------------------------
def initialize_output_train(
    model: Any,
    model_type: str,
    formula: str,
    hyperparameters: Mapping[str, Any],
    predictions: Any = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    """
    ``predictions`` is normally filled later by the controller once the
    model has been applied to the test split.
    """
    return _build(
        "train",
        {
            "model": model,
            "model_type": model_type,
            "formula": formula,
            "hyperparameters": dict(hyperparameters or {}),
        },
        predictions=predictions,
        specific_output=specific_output,
    )


# --------------------------------------------------
# fairness pre-processing
# --------------------------------------------------
def initialize_output_fairness_pre(
    preprocessed_data: Any,
    method: str,
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    return _build(
        "fairness_pre",
        {"preprocessed_data": preprocessed_data, "method": method},
        params=params,
        specific_output=specific_output,
    )


# --------------------------------------------------
# eval
# --------------------------------------------------
def initialize_output_eval(
    metrics: Mapping[str, Any],
    eval_type: str,
    input_data: Any,
    protected_attributes: Optional[Sequence[str]] = None,
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    return _build(
        "eval",
        {"metrics": metrics, "eval_type": eval_type, "input_data": input_data},
        protected_attributes=protected_attributes,
        params=params,
        specific_output=specific_output,
    )


# --------------------------------------------------
# fairness post-processing
# --------------------------------------------------
def initialize_output_fairness_post(
    adjusted_predictions: Any,
    method: str,
    input_data: Any,
    protected_attributes: Optional[Sequence[str]] = None,
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    return _build(
        "fairness_post",
        {
            "adjusted_predictions": adjusted_predictions,
            "method": method,
            "input_data": input_data,
        },
        protected_attributes=protected_attributes,
        params=params,
        specific_output=specific_output,
    )


# --------------------------------------------------
# report element
# --------------------------------------------------
def initialize_output_reportelement(
    type: str,
    content: Any,
    compatible_formats: Sequence[str],
    input_data: Any = None,
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    return _build(
        "reportelement",
        {
            "type": type,
            "content": content,
            "compatible_formats": list(compatible_formats),
        },
        input_data=input_data,
        params=params,
        specific_output=specific_output,
    )


# --------------------------------------------------
# report
# --------------------------------------------------
def initialize_output_report(
    report_title: str,
    report_type: str,
    compatible_formats: Sequence[str],
    sections: Sequence[Mapping[str, Any]],
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    """
    ``sections``: list of ``{"heading": str, "content": [reportelement, ...]}``
    """
    return _build(
        "report",
        {
            "report_title": report_title,
            "report_type": report_type,
            "compatible_formats": list(compatible_formats),
            "sections": list(sections),
        },
        params=params,
        specific_output=specific_output,
    )


# --------------------------------------------------
# publish
# --------------------------------------------------
def initialize_output_publish(
    alias: str,
    type: Optional[str],
    engine: str,
    path: str,
    success: bool,
    params: Optional[Mapping[str, Any]] = None,
    specific_output: Optional[Mapping[str, Any]] = None,
) -> OutputEnvelope:
    return _build(
        "publish",
        {
            "alias": alias,
            "type": type,
            "engine": engine,
            "path": path,
            "success": success,
        },
        params=params,
        specific_output=specific_output,
    )
