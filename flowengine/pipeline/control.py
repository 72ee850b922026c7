# flowengine/pipeline/control.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from flowengine.config.pipeline_config import OutputType

STAGES = (
    "split",
    "train",
    "fairness_pre",
    "eval",
    "fairness_post",
    "reportelement",
    "report",
    "publish",
)

_MISSING = object()


class StageControl(BaseModel):
    """
    Stage sub-record（FROZEN）

    - stage inputs as typed fields (all optional: presence is validated by
      the wrapper, not here)
    - ``params``: engine / instance alias -> hyperparameter overrides
    - extra fields are kept for custom engines
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        arbitrary_types_allowed=True,
    )

    params: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict)

    def engine_params(self, alias: str) -> Dict[str, Any]:
        return dict(self.params.get(alias) or {})


class SplitControl(StageControl):
    data: Any = None
    target_var: Optional[str] = None
    seed: int = 123


class TrainControl(StageControl):
    formula: Optional[str] = None
    # {"original": DataFrame, "normalized": DataFrame | None}
    data: Optional[Dict[str, Any]] = None
    norm_data: Optional[bool] = None


class FairnessPreControl(StageControl):
    data: Any = None
    target_var: Optional[str] = None
    protected_attributes: Optional[List[str]] = None


class EvalControl(StageControl):
    # mapping or DataFrame with predictions / actuals / protected columns
    eval_data: Any = None
    protected_attributes: Optional[List[str]] = None


class FairnessPostControl(StageControl):
    fairness_post_data: Any = None
    protected_attributes: Optional[List[str]] = None


class ReportElementControl(StageControl):
    pass


class ReportControl(StageControl):
    pass


class PublishControl(StageControl):
    output_folder: Optional[str] = None
    timeout: Optional[float] = None


class Control(BaseModel):
    """
    Control Object（FINAL / FROZEN）

    Semantics:
    - one Control == one workflow run
    - created once by the controller, passed by reference to every wrapper
    - read-only: wrappers derive stage-scoped views, never mutate it
    - unknown top-level keys are ignored
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    # -------------------------
    # run-level settings
    # -------------------------
    output_type: OutputType = OutputType.RESPONSE
    global_seed: int = 1

    # -------------------------
    # stage sub-records
    # -------------------------
    split: Optional[SplitControl] = None
    train: Optional[TrainControl] = None
    fairness_pre: Optional[FairnessPreControl] = None
    eval: Optional[EvalControl] = None
    fairness_post: Optional[FairnessPostControl] = None
    reportelement: Optional[ReportElementControl] = None
    report: Optional[ReportControl] = None
    publish: Optional[PublishControl] = None

    def section(self, stage: str) -> Optional[StageControl]:
        if stage not in STAGES:
            raise KeyError(f"Unknown stage '{stage}'. Known: {', '.join(STAGES)}")
        return getattr(self, stage)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], cfg=None) -> "Control":
        """
        Build a Control from a plain nested mapping.

        Run-level settings missing from ``raw`` are filled from ``cfg``
        (an AppConfig); publish defaults likewise.
        """
        data = dict(raw)

        if cfg is not None:
            data.setdefault("output_type", cfg.pipeline.output_type)
            data.setdefault("global_seed", cfg.pipeline.global_seed)

            if data.get("publish") is not None:
                publish = dict(data["publish"])
                if publish.get("output_folder") is None:
                    publish["output_folder"] = cfg.pipeline.publish_folder
                if publish.get("timeout") is None:
                    publish["timeout"] = cfg.pipeline.publish_timeout
                data["publish"] = publish

        return cls.model_validate(data)


# --------------------------------------------------
# field lookup used by wrapper validation
# --------------------------------------------------
def lookup(obj: Any, path: str, default: Any = None) -> Any:
    """
    Resolve a dotted path ("eval_data.predictions") through pydantic models,
    mappings and DataFrame columns. Returns ``default`` when any hop is absent.
    """
    current = obj
    for part in path.split("."):
        current = _step(current, part)
        if current is _MISSING or current is None:
            return default
    return current


def _step(obj: Any, key: str) -> Any:
    if obj is None:
        return _MISSING
    if isinstance(obj, pd.DataFrame):
        return obj[key] if key in obj.columns else _MISSING
    if isinstance(obj, Mapping):
        return obj.get(key, _MISSING)
    if isinstance(obj, BaseModel):
        value = getattr(obj, key, _MISSING)
        if value is _MISSING and obj.model_extra:
            value = obj.model_extra.get(key, _MISSING)
        return value
    return getattr(obj, key, _MISSING)
