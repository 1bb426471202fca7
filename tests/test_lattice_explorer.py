"""
Tests for the end-to-end pipeline, the command line and logging setup.
"""

import logging
import threading

import pytest

from lattice_configs import GenerationCancelled, GeneratorSettings
from lattice_explorer import main, run_pipeline
from lattice_logging import get_logger, log_performance, setup_logging


@pytest.fixture
def restore_root_logger():
    """setup_logging replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def test_pipeline_level_one():
    result = run_pipeline(GeneratorSettings(level=1, workers=2))
    assert result.point_count == 20
    assert result.report.candidates == 27
    assert result.vertex_count == 64
    assert result.vertex_seconds >= 0


def test_pipeline_parallel_vertices_match():
    sequential = run_pipeline(GeneratorSettings(level=2, workers=2))
    parallel = run_pipeline(GeneratorSettings(level=2, workers=3, parallel_vertices=True))
    assert set(sequential.points) == set(parallel.points)
    assert sequential.vertices == parallel.vertices


def test_pipeline_without_vertices():
    result = run_pipeline(GeneratorSettings(level=2, workers=1, expand_vertices=False))
    assert result.point_count == 400
    assert result.vertices is None
    assert result.vertex_count is None


def test_pipeline_progress_and_cancel():
    calls = []
    run_pipeline(GeneratorSettings(level=1, workers=1, expand_vertices=False),
                 progress=lambda done, total: calls.append(done))
    assert calls == [1, 2, 3]

    cancel = threading.Event()
    cancel.set()
    with pytest.raises(GenerationCancelled):
        run_pipeline(GeneratorSettings(level=1, workers=1), cancel_event=cancel)


def test_cli_summary(capsys, restore_root_logger):
    assert main(["--level", "1", "--workers", "2"]) == 0
    out = capsys.readouterr().out
    assert "FRACTAL LATTICE  n = 1" in out
    assert "Kept:       20 (expected 20)" in out
    assert "Vertices:   64" in out


def test_cli_no_vertices(capsys, restore_root_logger):
    assert main(["-n", "2", "--no-vertices"]) == 0
    out = capsys.readouterr().out
    assert "Kept:       400 (expected 400)" in out
    assert "Vertices" not in out


def test_cli_rejects_bad_levels(capsys, restore_root_logger):
    assert main(["--level", "-1"]) == 2
    assert "non-negative" in capsys.readouterr().err

    assert main(["--level", "4", "--max-level", "3"]) == 2
    assert "maximum is level 3" in capsys.readouterr().err


def test_setup_logging_writes_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "lattice.log"
    setup_logging(level="warning", log_file=str(log_file))
    assert restore_root_logger.level == logging.WARNING

    get_logger("fractal_lattice.test").warning("slab merge finished")
    get_logger("fractal_lattice.test").info("not written")
    for handler in restore_root_logger.handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "WARNING - slab merge finished" in text
    assert "not written" not in text


def test_setup_logging_debug_mode(restore_root_logger):
    setup_logging(debug_mode=True, level="ERROR")
    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1


def test_log_performance(caplog):
    with caplog.at_level("INFO"):
        log_performance("Lattice generation", 1.23456, n=2, kept=400)
    assert "Lattice generation took 1.235s (n=2, kept=400)" in caplog.text


def test_get_logger_default_name():
    assert get_logger().name == "fractal_lattice"
    assert get_logger("lattice_generator").name == "lattice_generator"


def test_cli_unwritable_log_file(tmp_path, capsys, restore_root_logger):
    log_file = tmp_path / "missing" / "lattice.log"
    assert main(["--level", "1", "--log-file", str(log_file)]) == 2
    assert "cannot open log file" in capsys.readouterr().err
    assert not log_file.exists()


def test_settings_workers_none_uses_host_default():
    settings = GeneratorSettings(level=1, workers=None)
    assert settings.workers >= 1
