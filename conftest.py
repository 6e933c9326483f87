import os
import tempfile

import pytest

# Paths are resolved when viralvibe.config is imported; keep test runs out of the source tree
os.environ.setdefault("VIRALVIBE_HOME", tempfile.mkdtemp(prefix="viralvibe_test_"))
os.environ["GEMINI_API_KEY"] = "mock-key"

# Keep a developer .env from overriding the mock environment
import dotenv  # noqa: E402

dotenv.load_dotenv = lambda *args, **kwargs: None


@pytest.fixture(autouse=True)
def mock_gemini_env(monkeypatch):
    """Mock credentials for every test"""
    monkeypatch.setenv("GEMINI_API_KEY", "mock-key")
