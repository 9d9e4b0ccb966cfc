"""HTTP routes for Reva."""

from flask import jsonify, request
from pydantic import ValidationError

from . import diagnostics
from .errors import utc_timestamp
from .identifiers import IdentifierGenerator
from .models import ChatTurn

MAX_DIAGNOSTIC_COUNT = 10000
MAX_MONITOR_SECONDS = 30.0
MIN_MONITOR_INTERVAL = 0.05


def _validation_details(exc: ValidationError):
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def register_routes(app):
    @app.post("/api/v1/chat")
    def chat():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400

        message = body.get("chatInput", body.get("message"))
        if not isinstance(message, str) or not message.strip():
            return jsonify({"error": "Missing chatInput in request body"}), 400

        try:
            turn = ChatTurn.model_validate(body)
        except ValidationError as exc:
            return (
                jsonify(
                    {
                        "error": "Invalid request body",
                        "details": _validation_details(exc),
                    }
                ),
                400,
            )

        result, status = app.engine.handle_message(turn)
        return jsonify(result.to_wire()), status

    @app.get("/health")
    def health():
        return jsonify({"status": "ok", "timestamp": utc_timestamp()})

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500

    if not app.settings.debug_routes:
        return

    @app.get("/api/v1/debug/identifiers")
    def identifier_diagnostics():
        count = request.args.get("count", default=100, type=int)
        count = max(1, min(count, MAX_DIAGNOSTIC_COUNT))
        generator = IdentifierGenerator(observer=app.observer)
        return jsonify(diagnostics.run_comprehensive_test(count, generator))

    @app.get("/api/v1/debug/identifiers/monitor")
    def identifier_monitor():
        duration = request.args.get("duration", default=5.0, type=float)
        interval = request.args.get("interval", default=1.0, type=float)
        duration = max(0.0, min(duration, MAX_MONITOR_SECONDS))
        interval = max(MIN_MONITOR_INTERVAL, min(interval, MAX_MONITOR_SECONDS))
        generator = IdentifierGenerator(observer=app.observer)
        report = diagnostics.monitor_generation(duration, interval, generator=generator)
        return jsonify(report)
