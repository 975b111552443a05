"""Tests for the HTTP delivery endpoints."""

import json

import pytest

from conftest import make_block
from logplot.cursors import CursorTracker
from logplot.extractor import Extractor
from logplot.models import Block, Sample
from logplot.retention import RetentionBuffer
from logplot.web import GAP_HEADER, create_app


@pytest.fixture
def cursors():
    return CursorTracker()


@pytest.fixture
def app(cpu_pattern_set, buffer, cursors):
    app = create_app(cpu_pattern_set, buffer, cursors)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


class TestDataEndpoint:
    def test_serializes_blocks(self, client, buffer):
        buffer.append(Block(fields={"usage": [Sample(0.0, 50.0), Sample(0.5, 60.0)]}, ts=0.5))
        resp = client.get("/data?client_id=web-1")
        assert resp.status_code == 200
        assert json.loads(resp.data) == [{"usage": [[0.0, 50.0], [0.5, 60.0]], "ts": 0.5}]

    def test_only_new_blocks_per_client(self, client, buffer):
        buffer.append(make_block(0.0))
        assert len(client.get("/data?client_id=a").get_json()) == 1
        assert client.get("/data?client_id=a").get_json() == []

        buffer.append(make_block(1.0))
        data = client.get("/data?client_id=a").get_json()
        assert [b["ts"] for b in data] == [1.0]
        assert [b["ts"] for b in client.get("/data?client_id=b").get_json()] == [0.0, 1.0]

    def test_missing_client_id_defaults_to_unknown(self, client, buffer, cursors):
        buffer.append(make_block(0.0))
        resp = client.get("/data")
        assert resp.status_code == 200
        assert len(resp.get_json()) == 1
        assert cursors.last_ts("unknown") == 0.0

    def test_gap_header_for_lagging_client(self, cpu_pattern_set, cursors):
        buf = RetentionBuffer(max_duration=1.0)
        client = create_app(cpu_pattern_set, buf, cursors).test_client()
        buf.append(make_block(0.0))
        assert GAP_HEADER not in client.get("/data?client_id=slow").headers

        for ts in (1.0, 2.0, 3.0):
            buf.append(make_block(ts))
        resp = client.get("/data?client_id=slow")
        assert resp.headers[GAP_HEADER] == "1"
        assert [b["ts"] for b in resp.get_json()] == [2.0, 3.0]


class TestConfigEndpoint:
    def test_returns_field_metadata_only(self, client):
        data = client.get("/config").get_json()
        assert data == {
            "cpu": {"plots": {"usage": {"axis": 0, "style": "-", "coef": 1.0, "ylim": None}}},
        }


class TestStatusEndpoints:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"

    def test_stats(self, client, buffer):
        buffer.append(make_block(0.0))
        client.get("/data?client_id=a")
        data = client.get("/stats").get_json()
        assert data["blocks_retained"] == 1
        assert data["consumers"] == 1
        assert data["lines_read"] == 0


class TestStaticDir:
    def test_no_index_without_static_dir(self, client):
        assert client.get("/").status_code == 404

    def test_serves_index(self, tmp_path, cpu_pattern_set, buffer, cursors):
        (tmp_path / "index.html").write_text("<h1>Live plots</h1>")
        client = create_app(cpu_pattern_set, buffer, cursors, static_dir=str(tmp_path)).test_client()
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Live plots" in resp.data
        assert client.get("/data").status_code == 200


class TestStrictJson:
    def test_nan_values_never_reach_the_body(self, client, cpu_pattern_set, buffer):
        block, _ = Extractor(cpu_pattern_set).process(["t=1 usage=nan\n", "t=2 usage=4\n"])
        buffer.append(block)

        def reject(constant):
            raise ValueError(f"non-JSON constant {constant}")

        data = json.loads(client.get("/data?client_id=strict").data, parse_constant=reject)
        assert data == [{"usage": [[1.0, 4.0]], "ts": 1.0}]
