# python -m pytest tablecms/tests/utils/test_smart_logger.py -v

import json

from tablecms.smart_logger import SmartLogger


class TestSmartLogger:
    """JSON-lines logger"""

    def test_level_filter(self):
        logger = SmartLogger(min_level="WARNING", console_output=False, file_output=False)
        assert not logger.should_log("INFO")
        assert logger.should_log("warning")
        assert logger.should_log("CRITICAL")

    def test_small_params_are_inline(self):
        logger = SmartLogger(console_output=False, file_output=False, max_inline_chars=100)
        entry = logger.build_entry("info", "rows.select", category="rows", params={"sql": "SELECT 1"})
        assert entry["level"] == "INFO"
        assert entry["category"] == "rows"
        assert entry["params"] == {"sql": "SELECT 1"}

    def test_large_params_without_file_output(self):
        logger = SmartLogger(console_output=False, file_output=False, max_inline_chars=10)
        entry = logger.build_entry("INFO", "big", params={"sql": "SELECT " + "x, " * 50})
        assert "params" not in entry
        assert entry["detail_save_error"] == "file_output_disabled"
        assert entry["params_summary"] == {"keys": ["sql"]}

    def test_zero_limit_always_inline(self):
        logger = SmartLogger(console_output=False, file_output=False, max_inline_chars=10)
        entry = logger.build_entry("INFO", "big", params=["x" * 100], max_inline_chars=0)
        assert entry["params"] == ["x" * 100]

    def test_file_output_writes_main_and_detail(self, tmp_path):
        main_path = tmp_path / "flow.jsonl"
        detail_dir = tmp_path / "details"
        logger = SmartLogger(
            main_log_path=str(main_path),
            detail_log_dir=str(detail_dir),
            min_level="DEBUG",
            console_output=False,
            file_output=True,
            max_inline_chars=10,
        )

        logger._log("INFO", "small", params={"a": 1})
        logger._log("INFO", "large", params={"sql": "x" * 100})

        lines = [json.loads(line) for line in main_path.read_text(encoding="utf-8").splitlines()]
        assert lines[0]["params"] == {"a": 1}
        detail_file = detail_dir / lines[1]["detail_ref"]
        assert json.loads(detail_file.read_text(encoding="utf-8")) == {"sql": "x" * 100}

    def test_console_output(self, capsys):
        logger = SmartLogger(console_output=True, file_output=False, min_level="INFO")
        logger._log("ERROR", "boom", category="http.error", params={"path": "/rows"})
        assert capsys.readouterr().out.strip() == "[ERROR][http.error] boom {'path': '/rows'}"
