import pytest


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Point local storage and the usage tracker at a throwaway directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("EVENTPULSE_DATA_DIR", str(path))
    monkeypatch.setenv("EVENTPULSE_MODEL", "gemini-test")
    monkeypatch.setenv("EVENTPULSE_LANGUAGE", "English")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return path
