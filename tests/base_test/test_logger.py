#!filepath: tests/base_test/test_logger.py
import pytest
from loguru import logger

from flowengine import logs, init_logging
from flowengine.config.log_config import LogConfig


@pytest.fixture
def captured():
    messages = []
    sink_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG")
    yield messages
    logger.remove(sink_id)


def test_facade_routes_to_loguru(captured):
    logs.info("[EVAL] hello")
    logs.warning("[PUBLISH] careful")

    output = "\n".join(captured)
    assert "[EVAL] hello" in output
    assert "[PUBLISH] careful" in output


def test_catch_reraises_and_logs(captured):
    @logs.catch(msg="engine failed")
    def explode():
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        explode()

    assert any("engine failed" in m for m in captured)


def test_catch_logs_timing(captured):
    @logs.catch(log_time=True)
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
    assert any("[TIME] add" in m for m in captured)


def test_init_logging_file_sink(tmp_path):
    cfg = LogConfig(dir=str(tmp_path / "logs"), level="DEBUG")

    configured = init_logging(cfg)
    try:
        assert configured is logs
        assert logs.level == "DEBUG"
        assert (tmp_path / "logs").is_dir()
    finally:
        init_logging(LogConfig())
        logger.remove()


def test_init_logging_disabled():
    init_logging(LogConfig(enabled=False))
    try:
        assert logs.enabled is False
    finally:
        init_logging(LogConfig())
        logger.remove()
