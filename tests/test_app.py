import io
import json

import pytest

from conftest import FakePopen
from pingscope.app import App, build_parser
from pingscope.core.ping_engine import PingSession
from pingscope.core.settings_manager import SettingsManager
from pingscope.main import main


@pytest.fixture
def settings(tmp_path):
    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("export_dir", str(tmp_path / "exports"))
    return settings


@pytest.fixture
def ping_file(tmp_path, linux_session_output):
    path = tmp_path / "ping.txt"
    path.write_text(linux_session_output, encoding="utf-8")
    return path


def _run(argv, settings):
    out = io.StringIO()
    code = App(build_parser().parse_args(argv), settings=settings, out=out).run()
    return code, out.getvalue()


class TestFileMode:
    def test_report(self, ping_file, settings):
        code, text = _run(["--file", str(ping_file)], settings)
        assert code == 0
        assert f"Ping report for {ping_file}" in text
        assert "4 total, 3 ok, 1 failed" in text
        assert "Last 4 entries" in text

    def test_host_names_the_report(self, ping_file, settings):
        code, text = _run(["google.com", "--file", str(ping_file)], settings)
        assert "Ping report for google.com" in text

    def test_display_count(self, ping_file, settings):
        _, text = _run(["--file", str(ping_file), "-d", "2"], settings)
        assert "Last 2 entries" in text

        _, text = _run(["--file", str(ping_file), "-d", "0"], settings)
        assert "Last" not in text

    def test_missing_file(self, tmp_path, settings):
        code, text = _run(["--file", str(tmp_path / "nope.txt")], settings)
        assert code == 1
        assert "cannot read" in text

    def test_bad_threshold(self, ping_file, settings):
        code, text = _run(["--file", str(ping_file), "--jitter-threshold", "0"], settings)
        assert code == 2
        assert "jitter_threshold_ms" in text

    def test_jitter_threshold_override(self, ping_file, settings):
        args = build_parser().parse_args(["--file", str(ping_file), "--jitter-threshold", "5"])
        app = App(args, settings=settings, out=io.StringIO())
        assert app.analysis_options().jitter_threshold_ms == 5


class TestExports:
    def test_json(self, ping_file, settings, tmp_path):
        code, text = _run(["google.com", "--file", str(ping_file), "--export"], settings)
        assert code == 0
        assert "Results exported to" in text

        exported = list((tmp_path / "exports").glob("pingscope-google-com-*.json"))
        assert len(exported) == 1
        payload = json.loads(exported[0].read_text(encoding="utf-8"))
        assert payload["host"] == "google.com"
        assert len(payload["entries"]) == 4

    def test_csv(self, ping_file, settings, tmp_path):
        target = tmp_path / "entries.csv"
        _, text = _run(["--file", str(ping_file), "--csv", str(target)], settings)
        assert target.exists()
        assert "Exported 4 entries" in text

    def test_pdf(self, ping_file, settings, tmp_path):
        target = tmp_path / "report.pdf"
        _, text = _run(["--file", str(ping_file), "--pdf", str(target)], settings)
        assert target.exists()
        assert "PDF report written to" in text

    def test_nothing_exported_without_entries(self, tmp_path, settings):
        empty = tmp_path / "empty.txt"
        empty.write_text("--- x ping statistics ---\n", encoding="utf-8")
        code, text = _run(["--file", str(empty), "--export"], settings)
        assert code == 0
        assert "Results exported" not in text
        assert not (tmp_path / "exports").exists()


class TestLiveMode:
    @pytest.fixture
    def fake_ping(self, monkeypatch):
        def install(stdout_lines, stderr_lines=()):
            popen = FakePopen(stdout_lines, stderr_lines)
            monkeypatch.setattr(
                "pingscope.app.PingSession",
                lambda host, options: PingSession(host, options, popen=popen))
            return popen
        return install

    def test_report_after_ping_exits(self, fake_ping, settings, linux_session_output):
        fake_ping([line + "\n" for line in linux_session_output.split("\n")])
        code, text = _run(["google.com", "-c", "4"], settings)
        assert code == 0
        assert text.count("  OK    ") >= 3
        assert "4 total, 3 ok, 1 failed" in text

    def test_immediate_exit_does_not_hang(self, fake_ping, settings):
        fake_ping([], ["ping: cannot resolve nosuchhost: Unknown host\n"])
        code, text = _run(["nosuchhost"], settings)
        assert code == 1
        assert "Error: ping: cannot resolve nosuchhost" in text

    def test_silent_exit(self, fake_ping, settings):
        fake_ping([], [])
        code, text = _run(["nosuchhost", "--quiet"], settings)
        assert code == 0
        assert "0 total" in text

    def test_bad_settings_file_still_runs(self, fake_ping, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"size": "big", "interval": "fast"}), encoding="utf-8")
        fake_ping(["64 bytes from 1.1.1.1: icmp_seq=1 ttl=60 time=9.0 ms\n"])
        code, text = _run(["1.1.1.1", "-c", "1"], SettingsManager(str(path)))
        assert code == 0
        assert "1 total, 1 ok, 0 failed" in text


class TestPingOptions:
    def test_cli_overrides_settings(self, settings):
        args = build_parser().parse_args(["-c", "3", "-i", "0.2", "-s", "100", "8.8.8.8"])
        options = App(args, settings=settings).ping_options()
        assert (options.count, options.interval, options.timeout, options.size) == (
            3, 0.2, 5.0, 100)

    def test_interface(self, settings, monkeypatch):
        monkeypatch.setattr("pingscope.app.resolve_interface_address",
                            lambda name: "192.168.1.20" if name == "eth0" else "")
        args = build_parser().parse_args(["--interface", "eth0", "8.8.8.8"])
        assert App(args, settings=settings).ping_options().source_ip == "192.168.1.20"


def test_main_requires_target():
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2
