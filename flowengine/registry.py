# flowengine/registry.py
from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, List, Optional, Type

from flowengine import logs
from flowengine.core.wrapper import BaseWrapper
from flowengine.pipeline.control import STAGES
from flowengine.utils.errors import ConfigurationError
from flowengine.wrappers.eval_wrapper import (
    EvalMSEWrapper,
    EvalStatisticalParityWrapper,
    EvalSummaryStatsWrapper,
)
from flowengine.wrappers.fairness_wrapper import (
    FairnessPostGenResidualWrapper,
    FairnessPreResamplingWrapper,
)
from flowengine.wrappers.publish_wrapper import ExcelPublishWrapper, PdfPublishWrapper
from flowengine.wrappers.report_wrapper import ModelSummaryReportWrapper
from flowengine.wrappers.reportelement_wrapper import (
    BoxplotPredictionsWrapper,
    TableSplitMetricsWrapper,
    TextMSESummaryWrapper,
)
from flowengine.wrappers.split_wrapper import (
    SplitCVWrapper,
    SplitRandomStratifiedWrapper,
    SplitRandomWrapper,
)
from flowengine.wrappers.train_wrapper import (
    TrainGBMWrapper,
    TrainGLMWrapper,
    TrainLMWrapper,
    TrainRFWrapper,
)

# alias -> wrapper class
_ENGINE_REGISTRY: Dict[str, Type[BaseWrapper]] = {
    "split_random": SplitRandomWrapper,
    "split_random_stratified": SplitRandomStratifiedWrapper,
    "split_cv": SplitCVWrapper,
    "train_lm": TrainLMWrapper,
    "train_glm": TrainGLMWrapper,
    "train_rf": TrainRFWrapper,
    "train_gbm": TrainGBMWrapper,
    "fairness_pre_resampling": FairnessPreResamplingWrapper,
    "eval_mse": EvalMSEWrapper,
    "eval_summarystats": EvalSummaryStatsWrapper,
    "eval_statisticalparity": EvalStatisticalParityWrapper,
    "fairness_post_genresidual": FairnessPostGenResidualWrapper,
    "reportelement_text_msesummary": TextMSESummaryWrapper,
    "reportelement_table_splitmetrics": TableSplitMetricsWrapper,
    "reportelement_boxplot_predictions": BoxplotPredictionsWrapper,
    "report_modelsummary": ModelSummaryReportWrapper,
    "publish_excel_basis": ExcelPublishWrapper,
    "publish_pdf_basis": PdfPublishWrapper,
}


def register_engine(alias: str, wrapper_cls: Type[BaseWrapper]) -> None:
    """
    Add (or replace) an engine alias.

    The wrapper must subclass BaseWrapper, declare a known stage and
    return a mapping from default_params().
    """
    if not isinstance(wrapper_cls, type) or not issubclass(wrapper_cls, BaseWrapper):
        raise ConfigurationError(
            f"Engine '{alias}': {wrapper_cls!r} is not a BaseWrapper subclass"
        )

    if wrapper_cls.stage not in STAGES:
        raise ConfigurationError(
            f"Engine '{alias}': unknown stage '{wrapper_cls.stage}'. "
            f"Known: {', '.join(STAGES)}"
        )

    defaults = wrapper_cls.default_params()
    if not isinstance(defaults, Mapping):
        raise ConfigurationError(
            f"Engine '{alias}': default_params() must return a mapping, "
            f"got {type(defaults).__name__}"
        )

    if alias in _ENGINE_REGISTRY:
        logs.warning(f"[Registry] replacing engine '{alias}'")

    _ENGINE_REGISTRY[alias] = wrapper_cls


def resolve_wrapper(alias: str) -> Type[BaseWrapper]:
    if alias not in _ENGINE_REGISTRY:
        available = ", ".join(sorted(_ENGINE_REGISTRY))
        raise ConfigurationError(
            f"No engine registered as '{alias}'. Available: {available}"
        )

    return _ENGINE_REGISTRY[alias]


def list_registered_engines(stage: Optional[str] = None) -> Dict[str, List[str]]:
    """
    stage -> sorted aliases; restricted to ``stage`` when given.
    """
    grouped: Dict[str, List[str]] = {}
    for alias, wrapper_cls in _ENGINE_REGISTRY.items():
        if stage is not None and wrapper_cls.stage != stage:
            continue
        grouped.setdefault(wrapper_cls.stage, []).append(alias)

    return {s: sorted(aliases) for s, aliases in grouped.items()}


def default_params(alias: str) -> dict:
    return dict(resolve_wrapper(alias).default_params())
