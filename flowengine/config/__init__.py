from .app_config import AppConfig
from .log_config import LogConfig
from .pipeline_config import OutputType, PipelineConfig

__all__ = ["AppConfig", "LogConfig", "OutputType", "PipelineConfig"]
