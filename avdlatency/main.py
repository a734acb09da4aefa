from __future__ import annotations

import json
import os

from flask import Flask, Response, jsonify, send_file

from avdlatency.monitor import config
from avdlatency.monitor.csv_store import CsvStore
from avdlatency.monitor.export_excel import (
    export_history_to_excel,
    load_history_frame,
    summarise_history,
)
from avdlatency.monitor.healthcheck import run_health_checks
from avdlatency.monitor.logging_utils import _monitor_event

app = Flask(__name__)


def _store() -> CsvStore:
    return CsvStore(config.CSV_OUTPUT_FILE_PATH)


@app.get("/api/health")
def api_health() -> Response:
    """Return a JSON health summary for configuration, filesystem, and CSV."""

    result = run_health_checks(entrypoint="web", store=_store())
    status = 200 if result.ok else 503
    return jsonify({"ok": result.ok, "checks": result.checks}), status


@app.get("/api/latencies/latest")
def api_latest_latencies() -> Response:
    """Return the rows written by the most recent run."""

    batch = _store().latest_batch()
    return jsonify(
        {
            "timestamp": batch[0].timestamp if batch else None,
            "regions": [record.as_dict() for record in batch],
        }
    )


@app.get("/api/latencies/summary")
def api_latency_summary() -> Response:
    summary = summarise_history(load_history_frame(_store()))
    return jsonify({"regions": json.loads(summary.to_json(orient="records"))})


@app.get("/download/csv")
def download_csv() -> Response:
    path = _store().path
    if not path.exists():
        return jsonify({"error": "No CSV output yet"}), 404
    return send_file(path, mimetype="text/csv", as_attachment=True, download_name=path.name)


@app.get("/api/exports/latest.xlsx")
def api_export_latest_xlsx() -> Response:
    try:
        path = export_history_to_excel(store=_store())
    except FileNotFoundError as exc:
        _monitor_event("error", phase="export", error=str(exc))
        return jsonify({"error": str(exc)}), 404
    return send_file(path, as_attachment=True, download_name=os.path.basename(path))


if __name__ == "__main__":  # pragma: no cover
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
