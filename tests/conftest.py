import pytest
import yaml

from logplot.patterns import build_pattern_set
from logplot.retention import RetentionBuffer
from logplot.models import Block, Sample

CPU_CONFIG = {
    "cpu": {
        "regex": r"t=(?P<ts>[\d.]+) usage=(?P<usage>\S+)",
        "plots": {"usage": {"axis": 0, "style": "-", "coef": 1.0}},
    },
}


@pytest.fixture
def cpu_config():
    return {k: dict(v) for k, v in CPU_CONFIG.items()}


@pytest.fixture
def cpu_pattern_set():
    return build_pattern_set(CPU_CONFIG)


@pytest.fixture
def config_file(tmp_path):
    """Write CPU_CONFIG as YAML and return its path."""
    path = tmp_path / "plots.yaml"
    path.write_text(yaml.safe_dump(CPU_CONFIG))
    return str(path)


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "app.log"
    path.write_text("")
    return str(path)


def make_block(ts: float, value: float = 1.0) -> Block:
    return Block(fields={"usage": [Sample(ts, value)]}, ts=ts)


@pytest.fixture
def buffer():
    return RetentionBuffer()
