from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from career_identity.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.usage_log_db_path)


def init_db() -> None:
    if not settings.usage_log_enabled:
        return
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_usage_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                user_id TEXT,
                operation TEXT NOT NULL,
                provider TEXT NOT NULL,
                model TEXT NOT NULL,
                input_tokens INTEGER NOT NULL,
                output_tokens INTEGER NOT NULL,
                cost_cents INTEGER NOT NULL,
                latency_ms INTEGER,
                success INTEGER NOT NULL,
                error_message TEXT,
                document_id TEXT,
                opportunity_id TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ai_usage_log_created_at
            ON ai_usage_log (created_at)
            """
        )
        conn.commit()


def log_ai_usage(
    *,
    operation: str,
    provider: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
    cost_cents: int,
    latency_ms: int | None,
    success: bool,
    error_message: str | None = None,
    user_id: str | None = None,
    document_id: str | None = None,
    opportunity_id: str | None = None,
) -> None:
    if not settings.usage_log_enabled:
        return
    init_db()
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute(
            """
            INSERT INTO ai_usage_log (
                created_at, user_id, operation, provider, model, input_tokens, output_tokens,
                cost_cents, latency_ms, success, error_message, document_id, opportunity_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                user_id,
                operation,
                provider,
                model,
                input_tokens,
                output_tokens,
                cost_cents,
                latency_ms,
                1 if success else 0,
                error_message,
                document_id,
                opportunity_id,
            ),
        )
        conn.commit()


def purge_old_records() -> int:
    if not settings.usage_log_enabled:
        return 0

    db_path = _get_db_path()
    if not db_path.exists():
        return 0
    retention = max(1, int(settings.usage_log_retention_days))
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM ai_usage_log WHERE created_at < datetime('now', ?)",
            (f"-{retention} days",),
        )
        conn.commit()
        return int(cur.rowcount or 0)


def get_summary(user_id: str | None = None) -> dict[str, Any]:
    if not settings.usage_log_enabled:
        return {"enabled": False}
    init_db()
    where = ""
    params: tuple[Any, ...] = ()
    if user_id:
        where = "WHERE user_id = ?"
        params = (user_id,)
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            f"""
            SELECT
                COUNT(*),
                COALESCE(SUM(input_tokens), 0),
                COALESCE(SUM(output_tokens), 0),
                COALESCE(SUM(cost_cents), 0),
                COALESCE(SUM(CASE WHEN success = 0 THEN 1 ELSE 0 END), 0)
            FROM ai_usage_log
            {where}
            """,
            params,
        )
        calls, input_tokens, output_tokens, cost_cents, failures = cur.fetchone()
        cur = conn.execute(
            f"""
            SELECT operation, COUNT(*) AS count
            FROM ai_usage_log
            {where}
            GROUP BY operation
            ORDER BY count DESC
            """,
            params,
        )
        by_operation = {row[0]: row[1] for row in cur.fetchall()}
    return {
        "enabled": True,
        "calls": calls,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "cost_cents": cost_cents,
        "failures": failures,
        "by_operation": by_operation,
    }
