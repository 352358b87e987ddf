import threading

from speech_orchestrator.core.logging import LoggingSettings, logger, setup_logging


def test_logging_settings_from_environment(monkeypatch, tmp_path):
    """LOG_LEVEL and LOG_DIR are read from the environment."""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_DIR", str(tmp_path))

    settings = LoggingSettings.from_env()

    assert settings.level == "DEBUG"
    assert settings.log_dir == str(tmp_path)


def test_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    assert LoggingSettings.from_env().level == "INFO"


def test_file_sink_collects_records_from_worker_threads(tmp_path):
    """Records logged from executor-style threads all land in the file, whole."""
    setup_logging(LoggingSettings(level="INFO", log_dir=str(tmp_path), colorize=False))
    try:
        workers = [
            threading.Thread(target=lambda i=i: logger.info(f"decode worker {i} done"))
            for i in range(8)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        logger.complete()

        lines = (tmp_path / "speech_orchestrator.log").read_text(encoding="utf-8").splitlines()
        worker_lines = [line for line in lines if "decode worker" in line]
        assert len(worker_lines) == 8
        assert all(line.endswith("done") for line in worker_lines)
    finally:
        setup_logging()
