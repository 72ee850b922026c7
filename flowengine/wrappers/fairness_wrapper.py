# flowengine/wrappers/fairness_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

from flowengine.config.pipeline_config import OutputType
from flowengine.core.outputs import (
    OutputEnvelope,
    initialize_output_fairness_post,
    initialize_output_fairness_pre,
)
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.fairness_engine import (
    RESAMPLING_METHODS,
    default_params_fairness_post_genresidual,
    default_params_fairness_pre_resampling,
    engine_fairness_post_genresidual,
    engine_fairness_pre_resampling,
)
from flowengine.pipeline.control import Control, StageControl, lookup
from flowengine.utils.errors import ConfigurationError, ValidationError


# ==================================================
# pre-processing
# ==================================================
class FairnessPreWrapper(BaseWrapper):
    """
    Contract:
    - consumes control.fairness_pre.data / target_var / protected_attributes
    - produces fairness_pre envelope: preprocessed_data / method
    """

    stage = "fairness_pre"
    required_inputs = ("data", "target_var")

    def execute(self, control: Control, section: StageControl, params, **inputs) -> OutputEnvelope:
        preprocessed, specific = self.invoke(section, params)

        specific = dict(specific or {})
        if section.protected_attributes:
            specific["protected_attributes"] = list(section.protected_attributes)

        return initialize_output_fairness_pre(
            preprocessed_data=preprocessed,
            method=self.method(params),
            params=params,
            specific_output=specific,
        )

    @abstractmethod
    def method(self, params: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    def invoke(
        self, section: StageControl, params: Dict[str, Any]
    ) -> Tuple[Any, Optional[Dict[str, Any]]]:
        ...


class FairnessPreResamplingWrapper(FairnessPreWrapper):
    alias = "fairness_pre_resampling"
    default_params = staticmethod(default_params_fairness_pre_resampling)

    def check(self, section, params, **inputs) -> None:
        if params["method"] not in RESAMPLING_METHODS:
            raise ConfigurationError(
                f"{self.tag} unknown resampling method '{params['method']}'. "
                f"Supported: {', '.join(RESAMPLING_METHODS)}"
            )
        if section.target_var not in section.data.columns:
            raise ValidationError(
                self.stage, [section.target_var], "target_var not found in data"
            )

    def method(self, params):
        return params["method"]

    def invoke(self, section, params):
        return engine_fairness_pre_resampling(
            data=section.data,
            target_var=section.target_var,
            method=params["method"],
            seed=params["seed"],
        )


# ==================================================
# post-processing
# ==================================================
class FairnessPostWrapper(BaseWrapper):
    """
    Contract:
    - consumes control.fairness_post.fairness_post_data (predictions, actuals)
    - produces fairness_post envelope: adjusted_predictions / method / input_data
    """

    stage = "fairness_post"
    required_inputs = (
        "fairness_post_data.predictions",
        "fairness_post_data.actuals",
    )
    method: str = ""

    def execute(self, control: Control, section: StageControl, params, **inputs) -> OutputEnvelope:
        adjusted = self.invoke(control, section, params)

        return initialize_output_fairness_post(
            adjusted_predictions=adjusted,
            method=self.method,
            input_data=section.fairness_post_data,
            protected_attributes=section.protected_attributes,
            params=params,
        )

    @abstractmethod
    def invoke(self, control: Control, section: StageControl, params: Dict[str, Any]) -> Any:
        ...


class FairnessPostGenResidualWrapper(FairnessPostWrapper):
    alias = "fairness_post_genresidual"
    method = "genresidual"
    default_params = staticmethod(default_params_fairness_post_genresidual)

    def check(self, section, params, **inputs) -> None:
        self.check_vectors(section, self.required_inputs)

    def invoke(self, control, section, params):
        return engine_fairness_post_genresidual(
            predictions=lookup(section, "fairness_post_data.predictions"),
            actuals=lookup(section, "fairness_post_data.actuals"),
            output_type=OutputType(control.output_type).value,
        )
