#!filepath: tests/base_test/test_app_config.py
import yaml
import pytest

from flowengine.config import AppConfig
from flowengine.config.log_config import LogConfig
from flowengine.config.pipeline_config import OutputType, PipelineConfig


@pytest.fixture
def sample_config_file(tmp_path):
    """
    创建临时 YAML 配置文件用于测试，
    pytest 会自动清理该目录。
    """
    data = {
        "log": {
            "dir": "logs",
            "rotation": "1 day",
            "retention": "30 days",
            "level": "DEBUG",
        },
        "pipeline": {
            "output_type": "prob",
            "global_seed": 42,
            "publish_folder": "exports/",
            "publish_timeout": 30,
        },
    }

    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump(data), encoding="utf-8")
    return config_file


def test_app_config_load(sample_config_file):
    """测试 AppConfig 是否能正确加载 YAML"""
    cfg = AppConfig.load(path=str(sample_config_file))

    assert isinstance(cfg, AppConfig)
    assert isinstance(cfg.log, LogConfig)
    assert isinstance(cfg.pipeline, PipelineConfig)


def test_log_config_values(sample_config_file):
    cfg = AppConfig.load(path=str(sample_config_file))
    assert cfg.log.level == "DEBUG"
    assert cfg.log.dir == "logs"


def test_pipeline_config_values(sample_config_file):
    cfg = AppConfig.load(path=str(sample_config_file))
    assert cfg.pipeline.output_type == OutputType.PROB
    assert cfg.pipeline.global_seed == 42
    assert cfg.pipeline.publish_timeout == 30.0


def test_default_config_file_loads(monkeypatch):
    monkeypatch.delenv("FLOWENGINE_CONFIG", raising=False)

    cfg = AppConfig.load()

    assert cfg.pipeline.output_type == OutputType.RESPONSE
    assert cfg.pipeline.publish_folder == "publish_exports"
    assert cfg.log.dir is None


def test_env_var_overrides_path(sample_config_file, monkeypatch):
    monkeypatch.setenv("FLOWENGINE_CONFIG", str(sample_config_file))

    cfg = AppConfig.load()

    assert cfg.pipeline.global_seed == 42


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppConfig.load(path=str(tmp_path / "nope.yml"))


def test_partial_yaml_keeps_defaults(tmp_path):
    path = tmp_path / "partial.yml"
    path.write_text("pipeline:\n  global_seed: 9\n", encoding="utf-8")

    cfg = AppConfig.load(path=str(path))

    assert cfg.pipeline.global_seed == 9
    assert cfg.log.level == "INFO"
