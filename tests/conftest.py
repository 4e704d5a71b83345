import pytest


@pytest.fixture
def qapp():
    """Ensure a QCoreApplication exists for timers and signals."""
    from PySide6.QtCore import QCoreApplication
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture(autouse=True)
def _no_debug_log(monkeypatch):
    monkeypatch.delenv("SB_DEBUG", raising=False)
