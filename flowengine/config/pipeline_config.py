# flowengine/config/pipeline_config.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OutputType(str, Enum):
    RESPONSE = "response"
    PROB = "prob"


class PipelineConfig(BaseModel):
    """
    Run-level defaults injected into every Control object.
    """

    output_type: OutputType = OutputType.RESPONSE
    global_seed: int = 1

    # publishing
    publish_folder: str = "publish_exports"
    publish_timeout: Optional[float] = None
