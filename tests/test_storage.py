import pytest

from bizdev import storage
from bizdev.errors import DeserializationError, NotFoundError
from bizdev.storage import KVEngine


@pytest.fixture
def engine(tmp_path):
    db = KVEngine.open(tmp_path / "kv")
    yield db
    db.close()


def test_put_then_get(engine):
    engine.put("a", "1")
    assert engine.has_key("a")
    assert engine.get("a") == "1"


def test_get_missing_key_raises(engine):
    assert not engine.has_key("nope")
    with pytest.raises(NotFoundError) as exc:
        engine.get("nope")
    assert isinstance(exc.value, KeyError)
    assert exc.value.key == "nope"


def test_put_overwrites(engine):
    engine.put("a", "1")
    engine.put("a", "2")
    assert engine.get("a") == "2"
    assert len(engine) == 1


def test_keys_are_ordered_and_prefix_filtered(engine):
    for key in ("10_2024_01", "1_2024_02", "1_2024_01", "2_2023_12"):
        engine.put(key, "[]")
    assert engine.keys() == ["10_2024_01", "1_2024_01", "1_2024_02", "2_2023_12"]
    assert engine.keys(prefix="1_") == ["1_2024_01", "1_2024_02"]
    assert engine.keys(prefix="3_") == []


def test_items_and_delete(engine):
    engine.put("b", "2")
    engine.put("a", "1")
    assert list(engine.items()) == [("a", "1"), ("b", "2")]
    assert engine.delete("a") is True
    assert engine.delete("a") is False
    assert list(engine.items()) == [("b", "2")]


def test_data_survives_reopen(tmp_path):
    with KVEngine.open(tmp_path / "kv") as db:
        db.put("k", "v")
    with KVEngine.open(tmp_path / "kv") as db:
        assert db.get("k") == "v"


def test_wipe_on_open_discards_everything(tmp_path):
    with KVEngine.open(tmp_path / "kv") as db:
        db.put("k", "v")
        db.put("j", "w")
    with KVEngine.open(tmp_path / "kv", should_wipe=True) as db:
        assert len(db) == 0
        assert not db.has_key("k")


def test_json_helpers(tmp_path):
    path = tmp_path / "nested" / "data.json"
    assert storage.load_json(path, default={"x": 0}) == {"x": 0}

    storage.atomic_write(path, '{"name": "Café", "n": 3}')
    assert storage.load_json(path) == {"name": "Café", "n": 3}
    assert "Café" in path.read_text(encoding="utf-8")


def test_load_json_corrupt_file_raises(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{oops", encoding="utf-8")
    with pytest.raises(DeserializationError):
        storage.load_json(path)
