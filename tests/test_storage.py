import asyncio

import pytest

from science_labs import acid_base, pendulum
from science_labs.errors import CorruptEntryError, ModelNotReadyError
from science_labs.normalization import Normalization
from science_labs.session import ModelSession
from science_labs.storage import ModelStore


@pytest.fixture
def trained(acid_rows):
    session = ModelSession(acid_base.EXPERIMENT)
    asyncio.run(session.train(acid_rows, epochs=2))
    return session


def test_missing_entries_return_none(tmp_path):
    store = ModelStore(tmp_path / "models")
    assert store.load_model("acid-base-model") is None
    assert store.load_normalization("acid-base-normalization") is None
    assert store.keys() == []


def test_session_round_trip(tmp_path, trained, acid_rows):
    store = ModelStore(tmp_path)
    trained.save(store)
    assert store.keys() == ["acid-base-model.pt", "acid-base-normalization.json"]

    restored = ModelSession(acid_base.EXPERIMENT)
    assert restored.load(store)
    assert restored.normalization == trained.normalization
    features = acid_rows.iloc[5].to_dict()
    expected = asyncio.run(trained.predict(features))
    assert asyncio.run(restored.predict(features)) == pytest.approx(expected, rel=1e-6)


def test_train_with_store_persists(tmp_path, acid_rows):
    store = ModelStore(tmp_path)
    session = ModelSession(acid_base.EXPERIMENT)
    asyncio.run(session.train(acid_rows, epochs=1, store=store))
    assert (tmp_path / "acid-base-model.pt").exists()
    assert (tmp_path / "acid-base-normalization.json").exists()


def test_load_with_missing_half_leaves_session_empty(tmp_path, trained):
    store = ModelStore(tmp_path)
    store.save_normalization("acid-base-normalization", trained.normalization)
    session = ModelSession(acid_base.EXPERIMENT)
    assert not session.load(store)
    assert not session.is_ready


def test_save_untrained_session_raises(tmp_path):
    with pytest.raises(ModelNotReadyError):
        ModelSession(acid_base.EXPERIMENT).save(ModelStore(tmp_path))


def test_later_save_overwrites(tmp_path):
    store = ModelStore(tmp_path)
    store.save_normalization("k", Normalization(mean={"a": 1.0}, std={"a": 1.0}))
    store.save_normalization("k", Normalization(mean={"a": 2.0}, std={"a": 3.0}))
    assert store.load_normalization("k") == Normalization(mean={"a": 2.0}, std={"a": 3.0})


def test_corrupt_normalization_raises(tmp_path):
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptEntryError) as info:
        ModelStore(tmp_path).load_normalization("broken")
    assert info.value.key == "broken"


def test_normalization_missing_std_raises(tmp_path):
    (tmp_path / "partial.json").write_text('{"mean": {"a": 1.0}}', encoding="utf-8")
    with pytest.raises(CorruptEntryError):
        ModelStore(tmp_path).load_normalization("partial")


def test_corrupt_model_raises(tmp_path):
    (tmp_path / "acid-base-model.pt").write_bytes(b"definitely not a checkpoint")
    with pytest.raises(CorruptEntryError):
        ModelStore(tmp_path).load_model("acid-base-model")


def test_model_from_other_experiment_rejected(tmp_path, trained):
    store = ModelStore(tmp_path)
    store.save_model(pendulum.EXPERIMENT.model_key, trained.model, "acid-base")
    with pytest.raises(CorruptEntryError):
        store.load_model(pendulum.EXPERIMENT.model_key, "pendulum")


@pytest.mark.parametrize("key", ["", "../escape", ".hidden", "a/b"])
def test_invalid_keys_rejected(tmp_path, key):
    with pytest.raises(ValueError):
        ModelStore(tmp_path).load_normalization(key)
