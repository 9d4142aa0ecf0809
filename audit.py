"""
Audit logging — records security-relevant events.

Events are written to both the audit_log table and structured logging.
A failed audit insert is logged and never fails the request itself.
"""

from __future__ import annotations

import logging
import sqlite3

from flask import has_request_context, request

from database import get_db, utcnow

logger = logging.getLogger(__name__)


def log_event(action: str, user_id: str | None = None, detail: str = "") -> None:
    """Insert an audit log entry and emit a structured log line."""
    ip, ua = "", ""
    if has_request_context():
        ip = request.remote_addr or ""
        ua = request.headers.get("User-Agent", "")

    try:
        db = get_db()
        db.execute(
            "INSERT INTO audit_log (user_id, action, detail, ip_address, user_agent, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, action, detail, ip, ua, utcnow()),
        )
        db.commit()
    except sqlite3.Error:
        logger.exception("audit: failed to record %s for user_id=%s", action, user_id)

    logger.info("audit: %s user_id=%s detail=%s ip=%s", action, user_id, detail, ip)

