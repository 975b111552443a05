"""Flask app serving extracted samples and plot metadata to dashboard clients."""

import os

from flask import Flask, jsonify, request, send_from_directory

from logplot.cursors import UNKNOWN_CONSUMER, CursorTracker
from logplot.models import block_to_dict
from logplot.patterns import PatternSet
from logplot.retention import RetentionBuffer
from logplot.stats import IngestStats

GAP_HEADER = "X-Data-Gap"


def create_app(
    pattern_set: PatternSet,
    buffer: RetentionBuffer,
    cursors: CursorTracker,
    stats: IngestStats | None = None,
    static_dir: str | None = None,
) -> Flask:
    app = Flask(__name__, static_folder=None)
    stats = stats or IngestStats()

    @app.route("/data")
    def data():
        client_id = request.args.get("client_id") or UNKNOWN_CONSUMER
        delivery = cursors.deliver(client_id, buffer)
        resp = jsonify([block_to_dict(b) for b in delivery.blocks])
        if delivery.gap:
            resp.headers[GAP_HEADER] = "1"
        return resp

    @app.route("/config")
    def config():
        return jsonify(pattern_set.to_dict())

    @app.route("/stats")
    def ingest_stats():
        snap = stats.snapshot()
        snap["blocks_retained"] = len(buffer)
        snap["blocks_evicted"] = buffer.evicted_count
        snap["consumers"] = len(cursors)
        return jsonify(snap)

    @app.route("/health")
    def health():
        return jsonify(status="ok")

    if static_dir:
        root = os.path.abspath(static_dir)

        @app.route("/")
        def index():
            return send_from_directory(root, "index.html")

        @app.route("/<path:filename>")
        def static_files(filename):
            return send_from_directory(root, filename)

    return app


def run_server(app: Flask, host: str, port: int):
    """Run the Flask app (intended for use in a daemon thread)."""
    app.run(host=host, port=port, threaded=True, use_reloader=False)
