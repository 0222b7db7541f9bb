import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import paperchain`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless PAPERCHAIN_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('PAPERCHAIN_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set PAPERCHAIN_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Fresh configuration for every test: no overrides, no PAPERCHAIN_* variables."""
    from paperchain.config import get_config_manager

    for name in list(os.environ):
        if name.startswith("PAPERCHAIN_") and name != "PAPERCHAIN_RUN_SLOW":
            monkeypatch.delenv(name, raising=False)

    mgr = get_config_manager()
    mgr.reset()
    yield mgr
    mgr.reset()


@pytest.fixture
def registry():
    """Registry over a ledger where ST1TEST and ST3TEST hold 5000 each."""
    from paperchain.ledger import InMemoryLedger
    from paperchain.registry import PaperRegistry

    return PaperRegistry(ledger=InMemoryLedger({"ST1TEST": 5000, "ST3TEST": 5000}))


@pytest.fixture
def configured_registry(registry):
    """Registry with ST2TEST bound as the authority."""
    from paperchain.models import CallContext

    registry.set_authority_contract(CallContext("ST1TEST"), "ST2TEST").unwrap()
    return registry
