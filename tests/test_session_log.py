import tempfile
import unittest
from pathlib import Path

from dircycle.config.paths import DircyclePaths
from dircycle.core import session_log
from dircycle.core.session_log import SessionLogger, resolve_debug_config


def read_log(paths: DircyclePaths) -> str:
    files = list(paths.logs_dir.glob("dircycle_session_*.md"))
    assert len(files) == 1, files
    return files[0].read_text(encoding="utf-8")


class SessionLoggerTests(unittest.TestCase):
    def tearDown(self) -> None:
        session_log.set_active_logger(None)

    def test_logger_disabled_creates_no_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, None)
            logger.log_event("browse", "browse.step", {"cursor": 0})
            self.assertFalse(paths.logs_dir.exists())
            self.assertIsNone(logger.path)

    def test_event_writes_markdown(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, "session")
            logger.log_event("browse", "browse.confirm", {"path": "/srv/app"})
            logger.close()
            text = read_log(paths)
            self.assertIn("# Dircycle Session Log", text)
            self.assertIn("session/browse · browse.confirm", text)
            self.assertIn('"path": "/srv/app"', text)

    def test_levels_are_filtered(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, "warn")
            logger.log_level("mode", "info", "mode.enable")
            logger.log_level("mode", "warn", "mode.odd")
            logger.log_event("browse", "browse.step")
            logger.close()
            text = read_log(paths)
            self.assertIn("mode.odd", text)
            self.assertNotIn("mode.enable", text)
            self.assertNotIn("browse.step", text)

    def test_log_exception(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, "error")
            try:
                raise ValueError("boom")
            except ValueError as exc:
                logger.log_exception("browse", exc)
            logger.close()
            text = read_log(paths)
            self.assertIn("exception", text)
            self.assertIn("ValueError", text)
            self.assertIn("boom", text)

    def test_log_order_newest_first(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, "session")
            logger.log_event("browse", "browse.step", "first")
            logger.log_event("browse", "browse.abort", "second")
            logger.close()
            text = read_log(paths)
            self.assertLess(text.index("browse.abort"), text.index("browse.step"))

    def test_module_helpers_use_active_logger(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, "all")
            session_log.set_active_logger(logger)
            self.assertIs(session_log.get_active_logger(), logger)
            session_log.log_event("sender", "sender.send", {"command": "cd /tmp; echo"})
            session_log.log_info("mode", "mode.enable")
            session_log.log_debug("dirtrack", "dirtrack.change")
            logger.close()
            text = read_log(paths)
            for event in ("sender.send", "mode.enable", "dirtrack.change"):
                self.assertIn(event, text)

    def test_module_helpers_without_logger_are_silent(self) -> None:
        session_log.set_active_logger(None)
        session_log.log_event("browse", "browse.step")
        session_log.log_error("sender", "sender.failure")

    def test_closed_logger_writes_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = DircyclePaths(Path(tmp))
            logger = SessionLogger(paths, "session")
            logger.close()
            logger.log_event("browse", "browse.step")
            self.assertFalse(paths.logs_dir.exists())

    def test_resolve_debug_config_levels(self) -> None:
        selection = resolve_debug_config(["session", "info"])
        self.assertIn("session", selection.enabled_types)
        self.assertIn("error", selection.enabled_levels)
        self.assertIn("warn", selection.enabled_levels)
        self.assertIn("info", selection.enabled_levels)
        self.assertNotIn("debug", selection.enabled_levels)

    def test_resolve_debug_config_switches(self) -> None:
        self.assertFalse(resolve_debug_config(False).enabled_levels)
        self.assertFalse(resolve_debug_config("off").enabled_types)
        everything = resolve_debug_config(True)
        self.assertIn("session", everything.enabled_types)
        self.assertIn("debug", everything.enabled_levels)


if __name__ == "__main__":
    unittest.main()
