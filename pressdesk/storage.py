"""
SQLite persistence for published reports and app settings.

Two key/value tables, each value stored as a JSON document:

- published_reports: report id -> PublishedReport
- app_settings: "current_settings" -> ContextSettings, "auth_secret" -> str

One short-lived connection per call, so a store can be shared between
Flask request threads.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models.report import ContextSettings, PublishedReport

logger = logging.getLogger(__name__)

SETTINGS_KEY = "current_settings"
AUTH_SECRET_KEY = "auth_secret"


class ReportStore:
    """Published report gallery plus persisted settings."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS published_reports (
                    id TEXT PRIMARY KEY,
                    publish_date INTEGER NOT NULL DEFAULT 0,
                    data TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Published reports
    # ------------------------------------------------------------------

    def save(self, report: PublishedReport) -> None:
        """Insert or replace a published report."""
        if not report.id:
            raise ValueError("Published report needs an id")
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO published_reports (id, publish_date, data) VALUES (?, ?, ?)",
                (report.id, report.publish_date, json.dumps(report.to_dict(), ensure_ascii=False)),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Saved published report {report.id}")

    def delete(self, report_id: str) -> bool:
        """Delete a report; returns False when it did not exist."""
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM published_reports WHERE id = ?", (report_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if deleted:
            logger.info(f"Deleted published report {report_id}")
        return deleted

    def get(self, report_id: str) -> Optional[PublishedReport]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT data FROM published_reports WHERE id = ?", (report_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return PublishedReport.from_dict(json.loads(row["data"]))

    def load_all(self) -> List[PublishedReport]:
        """All published reports, newest first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT data FROM published_reports ORDER BY publish_date DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()

        reports = []
        for row in rows:
            try:
                reports.append(PublishedReport.from_dict(json.loads(row["data"])))
            except ValueError as e:
                logger.warning(f"Skipping unreadable stored report: {e}")
        return reports

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _put(self, key: str, value: Any) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO app_settings (key, value) VALUES (?, ?)",
                (key, json.dumps(value, ensure_ascii=False)),
            )
            conn.commit()
        finally:
            conn.close()

    def _get(self, key: str) -> Any:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM app_settings WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return json.loads(row["value"]) if row is not None else None

    def save_settings(self, settings: ContextSettings) -> None:
        self._put(SETTINGS_KEY, settings.to_dict())

    def load_settings(self, defaults: Optional[Dict[str, Any]] = None) -> ContextSettings:
        """Stored settings layered over ``defaults`` (missing keys keep the default)."""
        base = ContextSettings.from_dict(defaults or {})
        stored = self._get(SETTINGS_KEY)
        if isinstance(stored, dict):
            return base.merged(stored)
        return base

    def save_auth_secret(self, secret: str) -> None:
        self._put(AUTH_SECRET_KEY, secret)

    def load_auth_secret(self) -> Optional[str]:
        value = self._get(AUTH_SECRET_KEY)
        return value if isinstance(value, str) else None
