"""Browser-facing web UI for vmmap.

This package provides a Flask application that serves vmmap reports
over HTTP.  It is an **optional** extra; install with::

    pip install py-vmmap[web]

The ``create_app`` factory in ``app.py`` wires an inspector and serves
three endpoints:

- ``GET /api/regions/<pid>`` — normalized regions as JSON.
- ``GET /api/summary/<pid>`` — summary buckets and totals as JSON.
- ``GET /report/<pid>`` — the plain-text report.
"""
