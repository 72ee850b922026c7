# flowengine/wrappers/eval_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from flowengine import logs
from flowengine.core.outputs import OutputEnvelope, initialize_output_eval
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.eval_engine import (
    default_params_eval_mse,
    default_params_eval_statisticalparity,
    default_params_eval_summarystats,
    engine_eval_mse,
    engine_eval_statisticalparity,
    engine_eval_summarystats,
)
from flowengine.pipeline.control import Control, StageControl, lookup
from flowengine.utils.errors import MissingInputError, ValidationError


class EvalWrapper(BaseWrapper):
    """
    EvalWrapper（FINAL）

    Contract:
    - consumes control.eval.eval_data (mapping or DataFrame) and
      control.eval.protected_attributes
    - produces eval envelope: metrics / eval_type / input_data
    - metrics is ALWAYS a dict (scalar engines are keyed by eval_type)
    """

    stage = "eval"
    eval_type: str = ""

    def execute(self, control: Control, section: StageControl, params, **inputs) -> OutputEnvelope:
        metrics, specific = self.invoke(section, params)

        logs.debug(f"{self.tag} {self.eval_type}: {metrics}")

        return initialize_output_eval(
            metrics=metrics,
            eval_type=self.eval_type,
            input_data=section.eval_data,
            protected_attributes=section.protected_attributes,
            params=params,
            specific_output=specific,
        )

    @abstractmethod
    def invoke(
        self, section: StageControl, params: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
        ...


class EvalMSEWrapper(EvalWrapper):
    alias = "eval_mse"
    eval_type = "mse"
    required_inputs = ("eval_data.predictions", "eval_data.actuals")
    default_params = staticmethod(default_params_eval_mse)

    def check(self, section, params, **inputs) -> None:
        self.check_vectors(section, self.required_inputs)

    def invoke(self, section, params):
        mse = engine_eval_mse(
            predictions=lookup(section, "eval_data.predictions"),
            actuals=lookup(section, "eval_data.actuals"),
        )
        return {"mse": mse}, None


class EvalSummaryStatsWrapper(EvalWrapper):
    alias = "eval_summarystats"
    eval_type = "summarystats"
    required_inputs = ("eval_data.predictions",)
    default_params = staticmethod(default_params_eval_summarystats)

    def check(self, section, params, **inputs) -> None:
        self.check_vectors(section, self.required_inputs)

    def invoke(self, section, params):
        predictions = lookup(section, "eval_data.predictions")
        return engine_eval_summarystats(predictions), {"n": len(predictions)}


class EvalStatisticalParityWrapper(EvalWrapper):
    """
    Statistical parity difference per protected attribute.

    Every attribute must be a column / key of eval_data with exactly two
    distinct values.
    """

    alias = "eval_statisticalparity"
    eval_type = "statisticalparity"
    required_inputs = ("eval_data.predictions", "protected_attributes")
    default_params = staticmethod(default_params_eval_statisticalparity)

    def check(self, section, params, **inputs) -> None:
        attrs = list(section.protected_attributes)
        if not attrs:
            raise MissingInputError(self.stage, "protected_attributes", self.name)

        missing = [a for a in attrs if lookup(section, f"eval_data.{a}") is None]
        if missing:
            raise ValidationError(
                self.stage, missing, "protected attributes not found in eval_data"
            )

        self.check_vectors(
            section, ["eval_data.predictions", *(f"eval_data.{a}" for a in attrs)]
        )

        non_binary = [
            a for a in attrs
            if pd.Series(lookup(section, f"eval_data.{a}")).nunique(dropna=True) != 2
        ]
        if non_binary:
            raise ValidationError(
                self.stage, non_binary, "protected attributes must be binary"
            )

    def invoke(self, section, params):
        protected = {
            a: lookup(section, f"eval_data.{a}") for a in section.protected_attributes
        }
        spd = engine_eval_statisticalparity(
            predictions=lookup(section, "eval_data.predictions"),
            protected=protected,
        )
        return {"spd": spd}, None
