import os

from searchengine.utils.env_loader import ENV_FILE_VARIABLE, load_environment


def test_load_environment_from_custom_file(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("TEST_DATABASE_URL=postgresql://db/index\nTEST_WORKERS=4\n")

    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.delenv("TEST_WORKERS", raising=False)

    loaded = load_environment(env_file, override=True)

    assert loaded == env_file
    assert os.getenv("TEST_DATABASE_URL") == "postgresql://db/index"
    assert os.getenv("TEST_WORKERS") == "4"


def test_load_environment_keeps_existing_values(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("TEST_WORKERS=4\n")
    monkeypatch.setenv("TEST_WORKERS", "16")
    monkeypatch.setenv(ENV_FILE_VARIABLE, str(env_file))

    assert load_environment() == env_file
    assert os.getenv("TEST_WORKERS") == "16"


def test_load_environment_missing_file(tmp_path):
    assert load_environment(tmp_path / "missing.env") is None
