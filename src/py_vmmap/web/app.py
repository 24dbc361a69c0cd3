"""Flask application factory for the vmmap web UI.

The ``create_app`` function wires an inspector and a host-info reader
into a Flask app with three endpoints:

- ``GET /api/regions/<pid>`` — the normalized regions as JSON.
- ``GET /api/summary/<pid>`` — per-type and malloc-zone buckets plus totals.
- ``GET /report/<pid>`` — the rendered text report.

The report endpoint accepts the boolean query flags ``pages``,
``interleaved``, ``summary`` and ``noCoalesce``.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from flask import Flask, Response, jsonify, request

from py_vmmap.errors import (
    InsufficientPrivilegeError,
    MalformedSizeError,
    TargetUnavailableError,
    VmmapError,
)
from py_vmmap.hostinfo import ProcHostInfo
from py_vmmap.inspector import Inspector
from py_vmmap.render import render_report
from py_vmmap.report import VmmapOptions, build_report

if TYPE_CHECKING:
    from py_vmmap.hostinfo import HostInfo
    from py_vmmap.summary import RegionTotals, SummaryBucket

_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_UNPROCESSABLE = 422
_HTTP_SERVER_ERROR = 500

# Query parameters accepted by /report, mapped to option fields.
_REPORT_FLAGS: dict[str, str] = {
    "pages": "pages",
    "interleaved": "interleaved",
    "summary": "summary",
    "noCoalesce": "no_coalesce",
}
_TRUE_VALUES = frozenset({"1", "true", "yes", "on", ""})


def _error_status(error: VmmapError) -> int:
    """Map an inspection error to an HTTP status code."""
    match error:
        case TargetUnavailableError():
            return _HTTP_NOT_FOUND
        case InsufficientPrivilegeError():
            return _HTTP_FORBIDDEN
        case MalformedSizeError():
            return _HTTP_UNPROCESSABLE
        case _:
            return _HTTP_SERVER_ERROR


def _bucket_json(buckets: dict[str, SummaryBucket]) -> list[dict[str, Any]]:
    return [dataclasses.asdict(buckets[key]) for key in sorted(buckets)]


def _totals_json(totals: RegionTotals) -> dict[str, Any]:
    return dataclasses.asdict(totals)


def _report_options() -> VmmapOptions:
    """Build report options from the request's query string."""
    enabled = {
        field: True
        for flag, field in _REPORT_FLAGS.items()
        if flag in request.args and request.args[flag].lower() in _TRUE_VALUES
    }
    return VmmapOptions(wide=True, **enabled)


def create_app(
    *,
    inspector: Inspector | None = None,
    host: HostInfo | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        inspector: The inspector to serve; a default one reading the
            real ``/proc`` is created if omitted.
        host: Process metadata source for rendered reports.

    Returns:
        A configured Flask application ready to serve.

    """
    if inspector is None:
        inspector = Inspector()
    if host is None:
        host = ProcHostInfo(proc_root=inspector.config.proc_root)

    app = Flask(__name__)

    @app.errorhandler(VmmapError)
    def handle_error(error: VmmapError) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        """Return inspection failures as JSON."""
        return jsonify({"error": str(error)}), _error_status(error)

    @app.route("/api/regions/<int:pid>")
    def regions(pid: int) -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return every region of *pid* as JSON."""
        entries = inspector.inspect(pid)
        return jsonify(
            {
                "pid": pid,
                "regions": [dataclasses.asdict(entry) for entry in entries],
            }
        )

    @app.route("/api/summary/<int:pid>")
    def summary(pid: int) -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the summary tables of *pid* as JSON."""
        report = build_report(inspector.inspect(pid), pid=pid)
        return jsonify(
            {
                "pid": pid,
                "page_size": report.page_size,
                "by_type": _bucket_json(report.by_type),
                "malloc_zones": _bucket_json(report.malloc_zones),
                "read_only_libraries": _totals_json(report.read_only_libraries),
                "writable": _totals_json(report.writable),
            }
        )

    @app.route("/report/<int:pid>")
    def report_text(pid: int) -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the rendered vmmap report of *pid* as plain text."""
        report = build_report(inspector.inspect(pid), _report_options(), pid=pid)
        return Response(render_report(report, host), mimetype="text/plain")

    return app


def main() -> None:
    """Run the web UI development server.

    This is the ``vmmap-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
