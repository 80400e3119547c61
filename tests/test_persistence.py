import json

import pytest
import torch

from tinyattn import CorruptState, DEFAULT_ALPHABET, Model


def trained_model():
    model = Model(DEFAULT_ALPHABET, embedding_size=4, generator=torch.Generator().manual_seed(1))
    model.update("hell", "o")
    return model

def test_save_load_roundtrip(tmp_path):
    model = trained_model()
    path = tmp_path / "nested" / "model.json"
    model.save(path)
    restored = Model.load(path)
    assert restored.vocabulary == model.vocabulary
    assert restored.embedding_size == 4
    for name in ("Wq", "Wk", "Wv", "Wo"):
        assert torch.equal(getattr(restored, name), getattr(model, name))
    assert restored.predict("o wo") == model.predict("o wo")

def test_saved_document_fields(tmp_path):
    path = tmp_path / "model.json"
    Model("abc", embedding_size=2).save(path)
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["format_version"] == 1
    assert doc["vocabulary"] == ["a", "b", "c"]
    assert doc["embedding_size"] == 2
    assert len(doc["Wq"]) == 2 and len(doc["Wq"][0]) == 2
    assert len(doc["Wo"]) == 2 and len(doc["Wo"][0]) == 3

def test_load_without_version(tmp_path):
    state = Model("abc", embedding_size=2).export_state()
    del state["format_version"]
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps(state), encoding="utf-8")
    assert Model.load(path).vocab_size == 3

def write_state(tmp_path, **changes):
    state = Model("abc", embedding_size=2).export_state()
    state.update(changes)
    path = tmp_path / "model.json"
    path.write_text(json.dumps(state), encoding="utf-8")
    return path

def test_wrong_matrix_shape_is_corrupt(tmp_path):
    path = write_state(tmp_path, Wo=[[0.0, 0.0], [0.0, 0.0]])
    with pytest.raises(CorruptState):
        Model.load(path)

def test_embedding_size_disagreeing_with_matrices(tmp_path):
    path = write_state(tmp_path, embedding_size=3)
    with pytest.raises(CorruptState):
        Model.load(path)

def test_vocabulary_disagreeing_with_wo(tmp_path):
    path = write_state(tmp_path, vocabulary=["a", "b", "c", "d"])
    with pytest.raises(CorruptState):
        Model.load(path)

def test_ragged_matrix_is_corrupt(tmp_path):
    path = write_state(tmp_path, Wq=[[0.0, 0.0], [0.0]])
    with pytest.raises(CorruptState):
        Model.load(path)

def test_missing_field_is_corrupt(tmp_path):
    state = Model("abc").export_state()
    del state["Wk"]
    path = tmp_path / "model.json"
    path.write_text(json.dumps(state), encoding="utf-8")
    with pytest.raises(CorruptState):
        Model.load(path)

def test_unsupported_version_is_corrupt(tmp_path):
    path = write_state(tmp_path, format_version=99)
    with pytest.raises(CorruptState):
        Model.load(path)

def test_invalid_json_is_corrupt(tmp_path):
    path = tmp_path / "model.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptState):
        Model.load(path)

def test_undecodable_file_is_corrupt(tmp_path):
    path = tmp_path / "model.json"
    path.write_bytes(b"\xff\xfe{")
    with pytest.raises(CorruptState):
        Model.load(path)

def test_boolean_matrix_entries_are_corrupt(tmp_path):
    path = write_state(tmp_path, Wq=[[True, 1.0], [0.0, 0.0]])
    with pytest.raises(CorruptState):
        Model.load(path)

def test_non_list_matrix_is_corrupt(tmp_path):
    path = write_state(tmp_path, Wk=3.0)
    with pytest.raises(CorruptState):
        Model.load(path)
