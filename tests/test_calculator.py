import math
import pickle

import pytest

from layout_metrics.calculator import EffortDistanceCalculator
from layout_metrics.config_loader import DEFAULT_CONFIG
from layout_metrics.effort_model import EffortModel
from layout_metrics.errors import ComputationError
from layout_metrics.geometry import KEY_PITCH_MM, STANDARD_GEOMETRY, Finger, GeometryTable, KeySlot, Row
from layout_metrics.layout_utils import qwerty_mapping, validate_layout


def test_standard_effort_model_tables():
    model = EffortModel.standard()
    assert model.name == 'standard'
    assert model.base_effort(Finger.LEFT_INDEX, Row.HOME) == pytest.approx(1.0)
    assert model.base_effort(Finger.RIGHT_PINKY, Row.TOP) == pytest.approx(1.8 * 1.3)
    # Center column penalty
    assert model.slot_effort(STANDARD_GEOMETRY.resolve('G')) == pytest.approx(1.4)
    assert model.slot_effort(STANDARD_GEOMETRY.resolve('F')) == pytest.approx(1.0)


def test_base_table_overrides_products():
    model = EffortModel.from_config({
        'version': 'table-1',
        'finger_strength': {'LEFT_PINKY': 2.0},
        'row_difficulty': {'HOME': 1.0, 'TOP': 1.5},
        'base': {'LEFT_PINKY': {'HOME': 0.5}},
    })
    assert model.base_effort(Finger.LEFT_PINKY, Row.HOME) == pytest.approx(0.5)
    assert model.base_effort(Finger.LEFT_PINKY, Row.TOP) == pytest.approx(3.0)

    with pytest.raises(ComputationError):
        model.base_effort(Finger.RIGHT_INDEX, Row.HOME)


def test_effort_model_accepts_numeric_keys():
    model = EffortModel.from_config({'finger_strength': {7: 1.1, '1': 2.0}, 'row_difficulty': {2: 1.0}})
    assert model.base_effort(Finger.RIGHT_INDEX, Row.HOME) == pytest.approx(1.1)
    assert model.base_effort(Finger.LEFT_PINKY, Row.HOME) == pytest.approx(2.0)

    with pytest.raises(ValueError):
        EffortModel.from_config({'finger_strength': {'LEFT_THUMB': 1.0}})


def test_fingerprint_tracks_tables():
    standard = EffortModel.standard()
    assert standard.fingerprint == EffortModel.standard().fingerprint
    assert standard.fingerprint.startswith('standard-1:')

    config = dict(DEFAULT_CONFIG['effort_models']['standard'])
    config['center_column_penalty'] = 2.0
    assert EffortModel.from_config(config).fingerprint != standard.fingerprint


def test_calculator_effort_and_distance(qwerty_layout):
    calculator = EffortDistanceCalculator(qwerty_layout, EffortModel.standard())

    assert calculator.char_effort('a') == pytest.approx(1.8)
    assert calculator.char_effort('t') == pytest.approx(1.3 * 1.4)
    assert calculator.char_effort('-') is None

    assert calculator.transition_distance('a', 's') == pytest.approx(KEY_PITCH_MM)
    assert calculator.transition_distance('f', 'r') == pytest.approx(math.hypot(0.25, 1.0) * KEY_PITCH_MM)
    assert calculator.transition_distance('a', 'a') == 0.0
    assert calculator.transition_distance('a', '-') is None

    efforts = calculator.key_efforts()
    assert len(efforts) == len(qwerty_layout)
    assert list(efforts) == sorted(efforts)


def test_calculator_rejects_layout_from_another_geometry():
    slots = dict(STANDARD_GEOMETRY.slots)
    slots['A'] = KeySlot('A', Row.HOME, 1, Finger.LEFT_PINKY, (-5.0, 19.05), True)
    shifted = GeometryTable(slots, name="shifted")
    layout = validate_layout(qwerty_mapping(), shifted)

    with pytest.raises(ComputationError):
        EffortDistanceCalculator(layout, EffortModel.standard(), STANDARD_GEOMETRY)

    calculator = EffortDistanceCalculator(layout, EffortModel.standard(), shifted)
    assert calculator.slot('a').coord == (-5.0, 19.05)


def test_calculator_rejects_incomplete_effort_model(qwerty_layout):
    partial = EffortModel(version='partial', finger_strength={Finger.LEFT_PINKY: 1.0},
                          row_difficulty={Row.HOME: 1.0})
    with pytest.raises(ComputationError):
        EffortDistanceCalculator(qwerty_layout, partial)


def test_effort_model_tables_are_read_only():
    strength = {finger: 1.0 for finger in Finger}
    model = EffortModel(version="t", finger_strength=strength, row_difficulty={row: 1.0 for row in Row})
    fingerprint = model.fingerprint

    strength[Finger.LEFT_PINKY] = 9.0
    with pytest.raises(TypeError):
        model.finger_strength[Finger.LEFT_PINKY] = 9.0

    assert model.fingerprint == fingerprint
    assert pickle.loads(pickle.dumps(model)) == model
