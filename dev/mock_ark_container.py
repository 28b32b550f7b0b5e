#!/usr/bin/env python3
"""Mock ark container API server for local development and tests."""

import sys
import time
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request

DEFAULT_RESPONSES: Dict[str, Any] = {
    "installBiz": {"code": "SUCCESS", "message": "install biz success!"},
    "uninstallBiz": {"code": "SUCCESS", "message": "uninstall biz success!"},
    "queryAllBiz": {
        "code": "SUCCESS",
        "data": [
            {
                "bizName": "biz1",
                "bizState": "ACTIVATED",
                "bizVersion": "0.0.1-SNAPSHOT",
                "mainClass": "com.alipay.sofa.web.biz1.Biz1Application",
                "webContextPath": "biz1",
                "bizStateRecords": [{"changeTime": 12345, "state": "ACTIVATED"}],
            }
        ],
    },
    "health": {
        "code": "SUCCESS",
        "data": {
            "healthData": {
                "jvm": {"java version": "1.8.0_291", "max memory(M)": 4096},
                "cpu": {"count": 12, "free (%)": 82.90837318159039},
                "masterBizInfo": {
                    "bizName": "base",
                    "bizState": "ACTIVATED",
                    "bizVersion": "1.0.0",
                    "webContextPath": "/",
                },
            }
        },
    },
}


def create_app(responses: Optional[Dict[str, Any]] = None, *, delay_seconds: float = 0.0) -> Flask:
    """
    Build the mock container.

    `responses` maps operation name to a JSON-able payload, or to a str served as a raw
    text body. Received request bodies are recorded in `app.config["RECEIVED"]`.
    """
    app = Flask(__name__)
    table = dict(DEFAULT_RESPONSES)
    table.update(responses or {})
    app.config["RECEIVED"] = []

    @app.route("/<operation>", methods=["GET", "POST"])
    def operation(operation: str):
        app.config["RECEIVED"].append((operation, request.get_json(silent=True)))
        if delay_seconds:
            time.sleep(delay_seconds)
        if operation not in table:
            return jsonify({"code": "FAILED", "message": f"unknown operation {operation}"}), 404
        payload = table[operation]
        if isinstance(payload, str):
            return Response(payload, mimetype="text/plain")
        return jsonify(payload)

    return app


if __name__ == "__main__":
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 1238
    print(f"Mock ark container starting on http://0.0.0.0:{port}", file=sys.stderr)
    create_app().run(host="0.0.0.0", port=port, debug=False)
