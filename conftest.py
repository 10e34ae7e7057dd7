import os

import pytest

from cell_vm.config import load_config


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """
    Default configuration for one test: CELL_VM_* variables from the
    developer's shell are dropped and the cached config is rebuilt.
    The state path points into the test's tmp dir so nothing touches the cwd.
    """
    for key in list(os.environ):
        if key.startswith("CELL_VM_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CELL_VM_STATE_PATH", str(tmp_path / "counter_state.boc"))
    monkeypatch.setenv("CELL_VM_LOG_LEVEL", "ERROR")
    load_config.cache_clear()
    yield tmp_path / "counter_state.boc"
    load_config.cache_clear()
