"""日志配置测试"""

import io
import json
import logging

import pytest

from depkit.utils.logger import reset_logging, setup_logging


@pytest.fixture(autouse=True)
def _restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    reset_logging()
    root.setLevel(level)
    for h in handlers:
        root.addHandler(h)


def test_text_output() -> None:
    stream = io.StringIO()
    setup_logging("DEBUG", stream=stream)
    logging.getLogger("depkit.test").debug("下载 %s", "jdk")
    assert "[DEBUG  ] depkit.test: 下载 jdk" in stream.getvalue()


def test_json_output() -> None:
    stream = io.StringIO()
    setup_logging("INFO", json_output=True, stream=stream)
    logging.getLogger("depkit.test").info("已保存")
    logging.getLogger("depkit.test").debug("hidden")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["level"] == "INFO"
    assert entry["logger"] == "depkit.test"
    assert entry["message"] == "已保存"


def test_repeated_setup_does_not_duplicate() -> None:
    stream = io.StringIO()
    setup_logging(stream=stream)
    setup_logging(stream=stream)
    logging.getLogger("depkit.test").warning("once")
    assert stream.getvalue().count("once") == 1
