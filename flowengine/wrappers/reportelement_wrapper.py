# flowengine/wrappers/reportelement_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Mapping, Optional, Tuple

from flowengine.core.outputs import OutputEnvelope, initialize_output_reportelement
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.reportelement_engine import (
    default_params_reportelement_boxplot_predictions,
    default_params_reportelement_table_splitmetrics,
    default_params_reportelement_text_msesummary,
    engine_reportelement_boxplot_predictions,
    engine_reportelement_table_splitmetrics,
    engine_reportelement_text_msesummary,
)
from flowengine.pipeline.control import Control, StageControl
from flowengine.pipeline.results import WorkflowResults
from flowengine.utils.errors import ConfigurationError, MissingInputError


class ReportElementWrapper(BaseWrapper):
    """
    ReportElementWrapper（FINAL）

    Contract:
    - run(control, workflow_results=..., alias=..., split_output=None)
    - params are looked up by the INSTANCE alias (one engine may back
      several elements in one report)
    - produces reportelement envelope: type / content / compatible_formats
    """

    stage = "reportelement"
    required_arguments = ("workflow_results", "alias")
    element_type: str = ""
    compatible_formats: Tuple[str, ...] = ()

    def params_key(self, inputs: Mapping[str, Any]) -> str:
        return inputs["alias"]

    def execute(
        self,
        control: Control,
        section: StageControl,
        params,
        *,
        workflow_results: WorkflowResults,
        alias: str,
        split_output: Any = None,
        **inputs,
    ) -> OutputEnvelope:
        content, specific = self.invoke(workflow_results, split_output, params)

        return initialize_output_reportelement(
            type=self.element_type,
            content=content,
            compatible_formats=self.compatible_formats,
            input_data=list(workflow_results),
            params=params,
            specific_output={"alias": alias, **(specific or {})},
        )

    @abstractmethod
    def invoke(
        self,
        workflow_results: WorkflowResults,
        split_output: Any,
        params: Dict[str, Any],
    ) -> Tuple[Any, Optional[Dict[str, Any]]]:
        ...


class TextMSESummaryWrapper(ReportElementWrapper):
    alias = "reportelement_text_msesummary"
    element_type = "text"
    compatible_formats = ("pdf", "xlsx", "html", "json", "markdown")
    default_params = staticmethod(default_params_reportelement_text_msesummary)

    def invoke(self, workflow_results, split_output, params):
        text, mean, n_splits = engine_reportelement_text_msesummary(
            workflow_results,
            eval_alias=params["eval_alias"],
            metric=params["metric"],
        )
        return text, {"mean": mean, "n_splits": n_splits}


class TableSplitMetricsWrapper(ReportElementWrapper):
    alias = "reportelement_table_splitmetrics"
    element_type = "table"
    compatible_formats = ("pdf", "xlsx", "html", "json")
    default_params = staticmethod(default_params_reportelement_table_splitmetrics)

    def invoke(self, workflow_results, split_output, params):
        table = engine_reportelement_table_splitmetrics(
            workflow_results, metrics=list(params["metrics"])
        )
        return table, None


class BoxplotPredictionsWrapper(ReportElementWrapper):
    alias = "reportelement_boxplot_predictions"
    element_type = "plot"
    compatible_formats = ("pdf", "html")
    required_arguments = ("workflow_results", "alias", "split_output")
    default_params = staticmethod(default_params_reportelement_boxplot_predictions)

    def check(self, section, params, **inputs) -> None:
        if params["group_var"] is None:
            raise MissingInputError(self.stage, "params.group_var", self.name)
        if params["source"] not in ("train", "post"):
            raise ConfigurationError(
                f"{self.tag} unknown prediction source '{params['source']}' (train | post)"
            )

    def invoke(self, workflow_results, split_output, params):
        # accept the split envelope itself or its bare splits mapping
        splits = split_output.get("splits", split_output)

        fig = engine_reportelement_boxplot_predictions(
            workflow_results,
            splits=splits,
            group_var=params["group_var"],
            source=params["source"],
        )
        return fig, {"group_var": params["group_var"], "source": params["source"]}
