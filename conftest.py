import pytest

from repl import Settings


@pytest.fixture
def settings():
    """REPL settings that never touch a real history file."""
    return Settings(history_file=None)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for key in ('CALC_PROMPT', 'CALC_EXIT_KEYWORD', 'CALC_HISTORY_FILE', 'CALC_LOG_LEVEL', 'CALC_SHOW_POSTFIX'):
        monkeypatch.delenv(key, raising=False)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")
