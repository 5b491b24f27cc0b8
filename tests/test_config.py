"""Tests for configuration layering."""

import pytest

from patch_engine.config import Config


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run every test in an empty directory with no PATCH_ENGINE_* env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in ("MAX_WORKERS", "VALIDATE_SYNTAX", "STRIP", "LOG_DIR",
                "REPORT_DIR", "METRICS", "METRICS_DIR"):
        monkeypatch.delenv("PATCH_ENGINE_" + key, raising=False)
    return tmp_path


class TestConfig:
    def test_defaults(self):
        cfg = Config.load()

        assert cfg.MAX_WORKERS == 4
        assert cfg.VALIDATE_SYNTAX is False
        assert cfg.STRIP is None
        assert cfg.LOG_DIR == ".patch_engine/logs"
        assert cfg.REPORT_DIR == ".patch_engine/reports"
        assert cfg.METRICS_ENABLED is True
        assert cfg.METRICS_DIR == ".patch_engine/metrics"

    def test_yaml_in_cwd(self, isolated):
        (isolated / ".patch_engine.yaml").write_text(
            "max_workers: 8\nvalidate_syntax: true\nstrip: 1\nmetrics: false\n"
        )

        cfg = Config.load()

        assert cfg.MAX_WORKERS == 8
        assert cfg.VALIDATE_SYNTAX is True
        assert cfg.STRIP == 1
        assert cfg.METRICS_ENABLED is False

    def test_explicit_path(self, isolated):
        path = isolated / "custom.yml"
        path.write_text("report_dir: out/reports\n")

        assert Config.load(str(path)).REPORT_DIR == "out/reports"

    def test_missing_explicit_path_uses_defaults(self, isolated):
        assert Config.load(str(isolated / "nope.yaml")).MAX_WORKERS == 4

    def test_env_overrides_yaml(self, isolated, monkeypatch):
        (isolated / ".patch_engine.yaml").write_text("max_workers: 8\nstrip: 2\n")
        monkeypatch.setenv("PATCH_ENGINE_MAX_WORKERS", "2")
        monkeypatch.setenv("PATCH_ENGINE_STRIP", "auto")
        monkeypatch.setenv("PATCH_ENGINE_VALIDATE_SYNTAX", "yes")

        cfg = Config.load()

        assert cfg.MAX_WORKERS == 2
        assert cfg.STRIP is None
        assert cfg.VALIDATE_SYNTAX is True

    def test_worker_count_floor(self, monkeypatch):
        monkeypatch.setenv("PATCH_ENGINE_MAX_WORKERS", "0")

        assert Config.load().MAX_WORKERS == 1

    def test_invalid_yaml_ignored(self, isolated):
        (isolated / ".patch_engine.yaml").write_text("max_workers: [unclosed\n")

        assert Config.load().MAX_WORKERS == 4

    def test_non_mapping_yaml_ignored(self, isolated):
        (isolated / ".patch_engine.yaml").write_text("- just\n- a list\n")

        assert Config.load().LOG_DIR == ".patch_engine/logs"
