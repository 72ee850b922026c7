#!filepath: flowengine/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .pipeline_config import PipelineConfig
from flowengine import logs


def project_root() -> str:
    """
    返回项目根目录（基于当前文件位置推导）:
    flowengine/config/app_config.py → flowengine/config → flowengine → project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(__file__), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env

        Resolution order for the YAML path:
        1) explicit ``path``
        2) $FLOWENGINE_CONFIG
        3) flowengine/config/base.yml
        """
        root = project_root()
        load_dotenv(os.path.join(root, ".env"))

        if path is None:
            path = os.getenv("FLOWENGINE_CONFIG") or default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        cfg = cls(**raw)
        logs.debug(f"[AppConfig] loaded {path}")
        return cfg
