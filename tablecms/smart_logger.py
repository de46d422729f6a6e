import json
import os
import threading
import time
from datetime import datetime
from typing import Any, Optional

from tablecms.config import settings


class SmartLogger:
    """JSON-lines event logger.

    Every event carries a level, a message and an optional category. ``params``
    that fit in ``max_inline_chars`` are written inline; larger payloads (long
    SQL, big parameter lists) go to a per-event detail file and the main log
    keeps only a summary plus a reference to that file.
    """

    LEVEL_PRIORITY = {
        "DEBUG": 0,
        "INFO": 1,
        "WARNING": 2,
        "ERROR": 3,
        "CRITICAL": 4,
    }
    _instance = None

    @classmethod
    def instance(cls):
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls):
        """Drop the shared instance so the next event re-reads settings."""
        cls._instance = None

    @classmethod
    def log(cls, level, message, category=None, params=None, max_inline_chars=None):
        cls.instance()._log(level, message, category, params, max_inline_chars)

    def __init__(
        self,
        main_log_path: Optional[str] = None,
        detail_log_dir: Optional[str] = None,
        min_level: Optional[str] = None,
        console_output: Optional[bool] = None,
        file_output: Optional[bool] = None,
        max_inline_chars: Optional[int] = None,
    ):
        self.main_log_path = main_log_path or settings.log_main_path
        self.detail_log_dir = detail_log_dir or settings.log_detail_dir
        self.min_level = (min_level or settings.log_level).upper()
        self.console_output = settings.log_console_output if console_output is None else console_output
        self.file_output = settings.log_file_output if file_output is None else file_output
        self.max_inline_chars = (
            settings.log_max_inline_chars if max_inline_chars is None else max_inline_chars
        )

        self._lock = threading.Lock()
        self._last_timestamp = None
        self._timestamp_counter = 0

        if self.file_output:
            for dir_path in (os.path.dirname(self.main_log_path), self.detail_log_dir):
                if dir_path:
                    os.makedirs(dir_path, exist_ok=True)

    def _next_trace_id(self) -> str:
        # Same-second events get _1, _2, ... suffixes
        current = str(int(time.time()))
        with self._lock:
            if self._last_timestamp == current:
                self._timestamp_counter += 1
            else:
                self._last_timestamp = current
                self._timestamp_counter = 1
            return f"{current}_{self._timestamp_counter}"

    def _save_detail(self, trace_id: str, payload: Any) -> Optional[str]:
        if not self.file_output:
            return None
        filename = f"{trace_id}.json"
        try:
            with open(os.path.join(self.detail_log_dir, filename), "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2, default=str)
        except OSError as e:
            return f"Error saving detail: {e}"
        return filename

    def should_log(self, level: str) -> bool:
        level_priority = self.LEVEL_PRIORITY.get(level.upper(), 1)
        min_priority = self.LEVEL_PRIORITY.get(self.min_level, 1)
        return level_priority >= min_priority

    def build_entry(self, level, message, category=None, params=None, max_inline_chars=None) -> dict:
        limit = self.max_inline_chars if max_inline_chars is None else max_inline_chars
        entry: dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "level": level.upper(),
            "message": "" if message is None else str(message),
        }
        if category:
            entry["category"] = category
        if params is None:
            return entry

        # max_inline_chars=0 means "always inline"
        if limit <= 0 or len(str(params)) <= limit:
            entry["params"] = params
            return entry

        detail_ref = self._save_detail(self._next_trace_id(), params)
        if detail_ref is None:
            entry["detail_save_error"] = "file_output_disabled"
        elif detail_ref.startswith("Error"):
            entry["detail_save_error"] = detail_ref
        else:
            entry["detail_ref"] = detail_ref

        if isinstance(params, dict):
            entry["params_summary"] = {"keys": list(params.keys())}
        elif isinstance(params, (list, tuple)):
            entry["params_summary"] = {"type": type(params).__name__, "length": len(params)}
        else:
            entry["params_summary"] = {"type": type(params).__name__}
        return entry

    def _log(self, level, message, category=None, params=None, max_inline_chars=None):
        if not self.should_log(level):
            return

        entry = self.build_entry(level, message, category, params, max_inline_chars)

        if self.file_output:
            with self._lock:
                with open(self.main_log_path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

        if self.console_output:
            category_str = f"[{category}]" if category else ""
            shown = entry.get("params", entry.get("params_summary"))
            suffix = f" {shown}" if shown is not None else ""
            print(f"[{entry['level']}]{category_str} {entry['message']}{suffix}")
