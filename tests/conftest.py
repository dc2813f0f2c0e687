import pytest

from science_labs import acid_base


@pytest.fixture(autouse=True)
def isolated_store_env(monkeypatch, tmp_path):
    monkeypatch.delenv("SCIENCE_LABS_HOME", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(scope="session")
def acid_rows():
    return acid_base.generate_synthetic_dataset(60, seed=42)
