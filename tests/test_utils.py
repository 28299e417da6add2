from loguru import logger

from node_daemon.runtime.utils import run_guarded


def test_run_guarded_logs_instead_of_raising():
    messages: list[str] = []
    sink_id = logger.add(messages.append, format="{message}")

    def boom():
        raise RuntimeError("daemon crashed")

    try:
        assert run_guarded(boom, "Service start callback") is False
    finally:
        logger.remove(sink_id)
    assert any("Service start callback failed: daemon crashed" in m for m in messages)


def test_run_guarded_runs_callback():
    seen = []
    assert run_guarded(lambda: seen.append(1), "Service stop callback") is True
    assert seen == [1]
