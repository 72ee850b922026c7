#!filepath: tests/pipeline/test_registry.py
import pytest

from flowengine import registry
from flowengine.core.outputs import initialize_output_eval
from flowengine.core.wrapper import BaseWrapper
from flowengine.utils.errors import ConfigurationError
from flowengine.wrappers.eval_wrapper import EvalMSEWrapper


class MAEWrapper(BaseWrapper):
    stage = "eval"
    alias = "eval_mae"
    required_inputs = ("eval_data.predictions", "eval_data.actuals")

    @staticmethod
    def default_params():
        return {}

    def execute(self, control, section, params, **inputs):
        p = section.eval_data["predictions"]
        a = section.eval_data["actuals"]
        mae = sum(abs(x - y) for x, y in zip(p, a)) / len(p)
        return initialize_output_eval({"mae": mae}, "mae", section.eval_data)


@pytest.fixture
def clean_registry(monkeypatch):
    monkeypatch.setattr(registry, "_ENGINE_REGISTRY", dict(registry._ENGINE_REGISTRY))


def test_builtins_registered():
    grouped = registry.list_registered_engines()

    assert grouped["split"] == ["split_cv", "split_random", "split_random_stratified"]
    assert grouped["train"] == ["train_gbm", "train_glm", "train_lm", "train_rf"]
    assert grouped["eval"] == ["eval_mse", "eval_statisticalparity", "eval_summarystats"]
    assert grouped["fairness_pre"] == ["fairness_pre_resampling"]
    assert grouped["fairness_post"] == ["fairness_post_genresidual"]
    assert len(grouped["reportelement"]) == 3
    assert grouped["report"] == ["report_modelsummary"]
    assert grouped["publish"] == ["publish_excel_basis", "publish_pdf_basis"]


def test_list_filtered_by_stage():
    assert registry.list_registered_engines("train") == {
        "train": ["train_gbm", "train_glm", "train_lm", "train_rf"]
    }
    assert registry.list_registered_engines("nothing") == {}


def test_every_builtin_alias_matches_wrapper():
    for stage, aliases in registry.list_registered_engines().items():
        for alias in aliases:
            wrapper_cls = registry.resolve_wrapper(alias)
            assert wrapper_cls.alias == alias
            assert wrapper_cls.stage == stage


def test_resolve_unknown_alias_lists_available():
    with pytest.raises(ConfigurationError) as exc:
        registry.resolve_wrapper("eval_auc")

    assert "eval_auc" in str(exc.value)
    assert "eval_mse" in str(exc.value)


def test_default_params_without_running():
    assert registry.default_params("split_cv") == {"cv_folds": 5}
    assert registry.default_params("train_rf")["ntree"] == 500
    assert registry.default_params("publish_pdf_basis") == {
        "obj_type": None,
        "timeout": None,
        "params": {},
    }


def test_register_custom_engine(clean_registry, make_control):
    registry.register_engine("eval_mae", MAEWrapper)

    wrapper_cls = registry.resolve_wrapper("eval_mae")
    control = make_control(eval={"eval_data": {"predictions": [1, 2], "actuals": [2, 2]}})

    env = wrapper_cls().run(control)

    assert env["metrics"]["mae"] == 0.5
    assert "eval_mae" in registry.list_registered_engines("eval")["eval"]


def test_register_rejects_non_wrapper(clean_registry):
    with pytest.raises(ConfigurationError, match="BaseWrapper"):
        registry.register_engine("bad", dict)


def test_register_rejects_unknown_stage(clean_registry):
    class Deploy(EvalMSEWrapper):
        stage = "deploy"

    with pytest.raises(ConfigurationError, match="deploy"):
        registry.register_engine("deploy_x", Deploy)


def test_register_rejects_non_mapping_defaults(clean_registry):
    class BadDefaults(EvalMSEWrapper):
        @staticmethod
        def default_params():
            return ["not", "a", "mapping"]

    with pytest.raises(ConfigurationError, match="mapping"):
        registry.register_engine("eval_bad", BadDefaults)
