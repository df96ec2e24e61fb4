# hisobchi/routes/system.py
"""
Liveness endpoint for deploy checks and the web-app's connection probe.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Run a trivial query and time it."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "ok", "response_time_ms": round(elapsed_ms, 2)}
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {"status": "error"}


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "ok"
    body = {
        "status": "ok" if healthy else "degraded",
        "database": database,
        "timestamp": to_utc_z(utcnow()),
    }
    return jsonify(body), 200 if healthy else 503
