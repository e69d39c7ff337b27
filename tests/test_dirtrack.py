import asyncio
import os
import sys
import unittest

from dircycle.shell.dirtrack import (
    SYNC_DEBOUNCE_SECONDS,
    DirectoryTracker,
    parse_osc7,
    read_process_cwd,
)


class Osc7Tests(unittest.TestCase):
    def test_parse_file_uri(self) -> None:
        self.assertEqual(parse_osc7("file://host/home/user/My%20Docs"), "/home/user/My Docs")

    def test_parse_rejects_other_schemes(self) -> None:
        self.assertIsNone(parse_osc7("http://example.com/x"))

    def test_output_report_notifies_and_is_stripped(self) -> None:
        tracker = DirectoryTracker("/", method="input")
        seen = []
        tracker.add_hook(seen.append)
        text = tracker.feed_output("\x1b]7;file://box/srv/app\x07$ ")
        self.assertEqual(text, "$ ")
        self.assertEqual(seen, ["/srv/app"])
        self.assertEqual(tracker.current, "/srv/app")

    def test_repeated_report_for_same_directory_is_ignored(self) -> None:
        tracker = DirectoryTracker("/srv", method="input")
        seen = []
        tracker.add_hook(seen.append)
        tracker.feed_output("\x1b]7;file://box/srv\x1b\\$ ")
        self.assertEqual(seen, [])

    def test_report_split_across_reads(self) -> None:
        tracker = DirectoryTracker("/", method="input")
        seen = []
        tracker.add_hook(seen.append)
        first = tracker.feed_output("x\x1b]7;file://h/srv/da")
        second = tracker.feed_output("ta\x07$ ")
        self.assertEqual(first + second, "x$ ")
        self.assertEqual(seen, ["/srv/data"])

    def test_report_split_inside_prefix_and_terminator(self) -> None:
        tracker = DirectoryTracker("/", method="input")
        seen = []
        tracker.add_hook(seen.append)
        shown = tracker.feed_output("out\x1b]")
        shown += tracker.feed_output("7;file://h/srv\x1b")
        shown += tracker.feed_output("\\$ ")
        self.assertEqual(shown, "out$ ")
        self.assertEqual(seen, ["/srv"])

    def test_unterminated_report_is_not_held_forever(self) -> None:
        tracker = DirectoryTracker("/", method="input")
        text = "\x1b]7;file://h/" + "a" * 5000
        self.assertEqual(tracker.feed_output(text), text)

    def test_trailing_slash_report_does_not_repeat(self) -> None:
        tracker = DirectoryTracker("/srv/data", method="input")
        seen = []
        tracker.add_hook(seen.append)
        for _ in range(3):
            tracker.feed_output("\x1b]7;file://h/srv/data/\x07$ ")
        self.assertEqual(seen, [])


class ProcTrackingTests(unittest.TestCase):
    def test_sync_notifies_when_reader_reports_new_directory(self) -> None:
        cwd = {"value": "/start"}
        tracker = DirectoryTracker("/start", method="proc", cwd_reader=lambda: cwd["value"])
        seen = []
        tracker.add_hook(seen.append)
        tracker.feed_output("output\n")
        self.assertEqual(seen, [])
        cwd["value"] = "/elsewhere"
        tracker.feed_output("\n")
        self.assertEqual(seen, ["/elsewhere"])

    def test_sync_without_reader_does_nothing(self) -> None:
        tracker = DirectoryTracker("/start", method="proc")
        tracker.sync()
        self.assertEqual(tracker.current, "/start")

    def test_reader_failure_is_ignored(self) -> None:
        tracker = DirectoryTracker("/start", method="proc", cwd_reader=lambda: None)
        tracker.sync()
        self.assertEqual(tracker.current, "/start")

    def test_input_is_ignored_in_proc_mode(self) -> None:
        tracker = DirectoryTracker("/start", method="proc", cwd_reader=lambda: "/start")
        tracker.feed_input("cd /tmp")
        self.assertEqual(tracker.current, "/start")

    @unittest.skipUnless(sys.platform.startswith("linux"), "requires /proc")
    def test_read_own_cwd(self) -> None:
        self.assertEqual(read_process_cwd(os.getpid()), os.getcwd())


class ProcSyncDebounceTests(unittest.IsolatedAsyncioTestCase):
    async def test_output_burst_reads_cwd_once(self) -> None:
        calls = []

        def reader():
            calls.append(1)
            return "/elsewhere"

        tracker = DirectoryTracker("/start", method="proc", cwd_reader=reader)
        seen = []
        tracker.add_hook(seen.append)
        for _ in range(50):
            tracker.feed_output("x" * 4096)
        self.assertEqual(calls, [])
        await asyncio.sleep(SYNC_DEBOUNCE_SECONDS * 3)
        self.assertEqual(len(calls), 1)
        self.assertEqual(seen, ["/elsewhere"])


class InputTrackingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tracker = DirectoryTracker("/work", method="input", home="/home/user")
        self.seen: list[str] = []
        self.tracker.add_hook(self.seen.append)

    def test_absolute_and_relative(self) -> None:
        self.tracker.feed_input("cd /srv")
        self.tracker.feed_input("cd app/../lib")
        self.assertEqual(self.seen, ["/srv", "/srv/lib"])

    def test_home_forms(self) -> None:
        self.tracker.feed_input("cd")
        self.tracker.feed_input("cd ~/projects")
        self.assertEqual(self.seen, ["/home/user", "/home/user/projects"])

    def test_dash_returns_to_previous(self) -> None:
        self.tracker.feed_input("cd /tmp")
        self.tracker.feed_input("cd -")
        self.assertEqual(self.seen, ["/tmp", "/work"])

    def test_repeated_cd_reports_each_time(self) -> None:
        self.tracker.feed_input("cd /tmp")
        self.tracker.feed_input("cd /tmp")
        self.assertEqual(self.seen, ["/tmp", "/tmp"])

    def test_pushd_and_popd(self) -> None:
        self.tracker.feed_input("pushd /a")
        self.tracker.feed_input("pushd /b")
        self.tracker.feed_input("popd")
        self.tracker.feed_input("popd")
        self.tracker.feed_input("popd")
        self.assertEqual(self.seen, ["/a", "/b", "/a", "/work"])

    def test_pushd_without_argument_swaps(self) -> None:
        self.tracker.feed_input("pushd /a")
        self.tracker.feed_input("pushd")
        self.assertEqual(self.seen, ["/a", "/work"])

    def test_chained_commands(self) -> None:
        self.tracker.feed_input("cd /srv && ls; cd logs")
        self.assertEqual(self.seen, ["/srv", "/srv/logs"])

    def test_cd_command_with_trailing_echo(self) -> None:
        self.tracker.feed_input("cd /opt; echo")
        self.assertEqual(self.seen, ["/opt"])

    def test_other_commands_are_ignored(self) -> None:
        self.tracker.feed_input("ls -la /tmp")
        self.tracker.feed_input("echo 'unterminated")
        self.assertEqual(self.seen, [])

    def test_removed_hook_is_not_called(self) -> None:
        self.tracker.remove_hook(self.seen.append)
        self.tracker.feed_input("cd /tmp")
        self.assertEqual(self.seen, [])
        self.assertEqual(self.tracker.current, "/tmp")


class TrackerConstructionTests(unittest.TestCase):
    def test_unknown_method(self) -> None:
        with self.assertRaises(ValueError):
            DirectoryTracker("/", method="magic")

    def test_path_is_normalized(self) -> None:
        self.assertEqual(DirectoryTracker("/a/b/../c/", method="input").current, "/a/c")


if __name__ == "__main__":
    unittest.main()
