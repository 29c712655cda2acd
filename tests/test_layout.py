import json
import pickle

import pytest

from layout_metrics.data_utils import load_layout_json
from layout_metrics.errors import (
    DuplicateAssignmentError, InvalidSlotError, LayoutError, MissingRequiredCharacterError
)
from layout_metrics.geometry import STANDARD_GEOMETRY, Finger
from layout_metrics.layout_utils import (
    create_layout_mapping, layout_from_qwerty_string, qwerty_mapping, validate_layout
)


def test_qwerty_layout_is_valid(qwerty_layout):
    assert len(qwerty_layout) == 32
    assert qwerty_layout.slot_for('q').finger == Finger.LEFT_PINKY
    assert qwerty_layout.slot_for('j').slot_id == 'J'
    assert qwerty_layout.unmapped == frozenset({'-'})
    assert qwerty_layout.geometry_name == STANDARD_GEOMETRY.name


def test_slot_ids_are_case_insensitive():
    upper = validate_layout(qwerty_mapping())
    lower = validate_layout({char: slot.lower() for char, slot in qwerty_mapping().items()})
    assert lower.keys == upper.keys
    assert lower.layout_hash == upper.layout_hash


def test_duplicate_assignment():
    mapping = qwerty_mapping()
    mapping['b'] = 'v'
    with pytest.raises(DuplicateAssignmentError) as excinfo:
        validate_layout(mapping)
    assert excinfo.value.slot_id == 'V'
    assert excinfo.value.chars == ('b', 'v')


def test_invalid_slot():
    mapping = qwerty_mapping()
    mapping['a'] = 'F13'
    with pytest.raises(InvalidSlotError) as excinfo:
        validate_layout(mapping)
    assert excinfo.value.slot_id == 'F13'
    assert excinfo.value.char == 'a'


def test_invalid_slot_is_reported_before_duplicates():
    with pytest.raises(InvalidSlotError):
        validate_layout({'a': 'Q', 'b': 'Q', 'c': 'nowhere'})


def test_missing_required_characters():
    mapping = qwerty_mapping()
    del mapping['q']
    del mapping['z']
    with pytest.raises(MissingRequiredCharacterError) as excinfo:
        validate_layout(mapping)
    assert excinfo.value.chars == ('q', 'z')


def test_required_characters_are_configurable():
    layout = validate_layout({'a': 'F', 'b': 'J'}, required_chars='ab', optional_chars='c')
    assert layout.unmapped == frozenset({'c'})


@pytest.mark.parametrize("mapping", [{}, {'ab': 'Q'}, {'': 'Q'}])
def test_malformed_mappings(mapping):
    with pytest.raises(LayoutError):
        validate_layout(mapping, required_chars='')


def test_empty_slot_identifier():
    with pytest.raises(InvalidSlotError):
        validate_layout({'a': '  '}, required_chars='a')


def test_layout_hash_is_content_based():
    first = validate_layout(qwerty_mapping(), name="first")
    second = validate_layout(dict(reversed(list(qwerty_mapping().items()))), name="second")
    assert first.layout_hash == second.layout_hash

    swapped = qwerty_mapping()
    swapped['a'], swapped['s'] = swapped['s'], swapped['a']
    assert validate_layout(swapped).layout_hash != first.layout_hash


def test_layout_from_qwerty_string(dvorak_layout):
    assert dvorak_layout.slot_for("'").slot_id == 'Q'
    assert dvorak_layout.slot_for('a').slot_id == 'A'
    assert dvorak_layout.slot_for('e').slot_id == 'D'
    assert dvorak_layout.slot_for('z').slot_id == '/'


def test_qwerty_string_with_empty_keys():
    mapping = layout_from_qwerty_string("q_e")
    assert mapping == {'q': 'Q', 'e': 'E'}

    with pytest.raises(LayoutError):
        layout_from_qwerty_string("qq")
    with pytest.raises(LayoutError):
        layout_from_qwerty_string("x" * 40)


def test_create_layout_mapping():
    assert create_layout_mapping("E T A", "d f j") == {'e': 'D', 't': 'F', 'a': 'J'}

    with pytest.raises(LayoutError):
        create_layout_mapping("eta", "DF")
    with pytest.raises(LayoutError):
        create_layout_mapping("eea", "DFJ")


def test_layout_string(qwerty_layout):
    chars, positions = qwerty_layout.get_layout_string().split(" → ")
    assert len(chars) == len(positions) == 32
    assert positions[chars.index('a')] == 'A'


def test_load_layout_json_formats(tmp_path):
    single = tmp_path / "mine.json"
    single.write_text(json.dumps(qwerty_mapping()))
    assert list(load_layout_json(single)) == ['mine']

    named = tmp_path / "named.json"
    named.write_text(json.dumps({"qwerty": qwerty_mapping(), "tiny": {"a": "F"}}))
    assert set(load_layout_json(named)) == {'qwerty', 'tiny'}

    listed = tmp_path / "listed.json"
    listed.write_text(json.dumps([{"name": "one", "mapping": {"a": "F"}}, {"mapping": {"b": "J"}}]))
    assert load_layout_json(listed) == {'one': {'a': 'F'}, 'layout_2': {'b': 'J'}}

    broken = tmp_path / "broken.json"
    broken.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_layout_json(broken)

    for empty in ("[]", "{}"):
        empty_file = tmp_path / "empty.json"
        empty_file.write_text(empty)
        with pytest.raises(ValueError):
            load_layout_json(empty_file)

    with pytest.raises(FileNotFoundError):
        load_layout_json(tmp_path / "missing.json")


def test_layout_keys_are_read_only(qwerty_layout):
    with pytest.raises(TypeError):
        qwerty_layout.keys['a'] = qwerty_layout.keys['q']
    with pytest.raises(TypeError):
        del qwerty_layout.keys['a']

    assert qwerty_layout.slot_for('a').slot_id == 'A'
    assert len({slot.slot_id for slot in qwerty_layout.keys.values()}) == len(qwerty_layout)


def test_layout_survives_pickling(dvorak_layout):
    restored = pickle.loads(pickle.dumps(dvorak_layout))

    assert restored == dvorak_layout
    assert restored.layout_hash == dvorak_layout.layout_hash
    with pytest.raises(TypeError):
        restored.keys['a'] = restored.keys['q']
