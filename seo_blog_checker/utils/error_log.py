"""
Persistent record of per-article failures.

``logs/error_log.json`` keeps every entry as a JSON array; a daily
``logs/errors_{YYYY-MM-DD}.log`` gets one human-readable line per failure.
Nothing in here raises: a broken log must not abort a batch.
"""

import asyncio
import json
import logging
import threading
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


class ErrorLogger:
    def __init__(self, log_dir: Union[str, Path] = "logs"):
        self.log_dir = Path(log_dir)
        self.log_file = self.log_dir / "error_log.json"
        self._lock = threading.Lock()

    def initialize(self):
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            if not self.log_file.exists():
                self.log_file.write_text("[]", encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to initialize error logger: {e}")

    def build_entry(self, identifier: str, error: BaseException) -> Dict[str, Any]:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "slug": identifier or "unknown",
            "error_type": type(error).__name__,
            "message": str(error),
            "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            "details": {},
        }
        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            entry["details"]["status"] = status_code
        missing = getattr(error, "missing_fields", None)
        if missing:
            entry["details"]["missing_fields"] = list(missing)
        if error.__cause__ is not None:
            entry["details"]["cause"] = f"{type(error.__cause__).__name__}: {error.__cause__}"
        return entry

    async def log_error(self, identifier: str, error: BaseException):
        entry = self.build_entry(identifier, error)
        await asyncio.to_thread(self._write, entry)

    def _write(self, entry: Dict[str, Any]):
        try:
            with self._lock:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                entries = self._read()
                entries.append(entry)
                self.log_file.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")

                daily = self.log_dir / f"errors_{entry['timestamp'][:10]}.log"
                with open(daily, "a", encoding="utf-8") as f:
                    f.write(f"[{entry['timestamp']}] {entry['slug']}: {entry['error_type']} - {entry['message']}\n")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to log error: {e}")

    def _read(self) -> List[Dict[str, Any]]:
        try:
            data = json.loads(self.log_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            logger.warning(f"⚠️ {self.log_file} is corrupt, starting a new log")
            return []
        return data if isinstance(data, list) else []

    def get_error_summary(self) -> List[Dict[str, Any]]:
        """Group logged errors by type with the affected slugs."""
        try:
            entries = self._read()
        except OSError as e:
            logger.error(f"Failed to generate error summary: {e}")
            return []
        summary: Dict[str, Dict[str, Any]] = {}
        for entry in entries:
            group = summary.setdefault(entry.get("error_type", "Error"), {"count": 0, "slugs": []})
            group["count"] += 1
            if entry.get("slug") not in group["slugs"]:
                group["slugs"].append(entry.get("slug"))
        return [{"error_type": error_type, "count": data["count"], "affected_slugs": data["slugs"]}
                for error_type, data in summary.items()]

    def clear_logs(self):
        try:
            with self._lock:
                self.log_file.write_text("[]", encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to clear error logs: {e}")
