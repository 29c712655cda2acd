import itertools

import pytest

from layout_metrics.classifier import (
    ClassifierConfig, RollDirection, SameFingerClass, ScissorsClass, StretchPattern, TrigramClass,
    classify_bigram, classify_bigram_roll, classify_lateral_stretch, classify_same_finger,
    classify_scissors, classify_trigram, classify_trigram_flags, is_center_column
)
from layout_metrics.geometry import STANDARD_GEOMETRY, Finger, KeySlot, Row


def slot(slot_id):
    return STANDARD_GEOMETRY.resolve(slot_id)


def slots_for(keys):
    return [slot(key) for key in keys]


# ============================================================================
# Same-finger bigrams
# ============================================================================
def test_adjacent_row_same_finger_is_basic_sfb():
    assert classify_same_finger(slot('E'), slot('D')) is SameFingerClass.BASIC_SFB
    assert classify_same_finger(slot('F'), slot('G')) is SameFingerClass.BASIC_SFB


def test_two_rows_apart_is_two_row_sfb():
    assert classify_same_finger(slot('Q'), slot('Z')) is SameFingerClass.TWO_ROW_SFB
    assert classify_same_finger(slot('I'), slot(',')) is SameFingerClass.TWO_ROW_SFB


def test_same_key_or_different_fingers_is_not_sfb():
    assert classify_same_finger(slot('E'), slot('E')) is None
    assert classify_same_finger(slot('E'), slot('R')) is None


def test_skip_bigrams_by_column_distance():
    near = KeySlot('N1', Row.HOME, 1, Finger.LEFT_INDEX, (0.0, 0.0))
    two = KeySlot('N3', Row.HOME, 3, Finger.LEFT_INDEX, (38.1, 0.0))
    far = KeySlot('N4', Row.TOP, 4, Finger.LEFT_INDEX, (57.15, -19.05))
    far_low = KeySlot('N5', Row.NUMBER, 5, Finger.LEFT_INDEX, (76.2, -38.1))

    assert classify_same_finger(near, two) is SameFingerClass.SKIP_BIGRAM_2U
    assert classify_same_finger(near, far) is SameFingerClass.SKIP_BIGRAM_3U_PLUS
    # Two rows apart wins over the column distance
    assert classify_same_finger(near, far_low) is SameFingerClass.TWO_ROW_SFB


def test_row_jump_threshold_is_configurable():
    assert classify_same_finger(slot('Q'), slot('Z'), row_jump_threshold=3) is SameFingerClass.BASIC_SFB


# ============================================================================
# Scissors, stretches and tallies
# ============================================================================
def test_pinky_scissors():
    assert classify_scissors(slot('Q'), slot('X')) is ScissorsClass.PINKY_SCISSORS
    assert classify_scissors(slot('.'), slot('P')) is ScissorsClass.PINKY_SCISSORS


def test_general_scissors():
    assert classify_scissors(slot('E'), slot('V')) is ScissorsClass.GENERAL_SCISSORS
    assert classify_scissors(slot('M'), slot('I')) is ScissorsClass.GENERAL_SCISSORS


def test_not_scissors():
    # One row apart
    assert classify_scissors(slot('E'), slot('F')) is None
    # Fingers not adjacent
    assert classify_scissors(slot('Q'), slot('C')) is None
    # Different hands
    assert classify_scissors(slot('V'), slot('U')) is None


def test_lateral_stretch_severity():
    assert classify_lateral_stretch(slot('D'), slot('T')) == pytest.approx(2.5)
    assert classify_lateral_stretch(slot('E'), slot('T')) == pytest.approx(2.5 * 1.3)
    assert classify_lateral_stretch(slot('T'), slot('E')) == pytest.approx(2.5 * 1.3)
    assert classify_lateral_stretch(slot('W'), slot('B')) == pytest.approx(3.0)
    assert classify_lateral_stretch(slot('K'), slot('H')) == pytest.approx(2.5 * 1.3)
    assert classify_lateral_stretch(slot('D'), slot('F')) is None


def test_custom_stretch_table():
    config = ClassifierConfig(stretch_patterns=(StretchPattern((1, 2), 4.0),), same_row_multiplier=2.0)
    assert classify_lateral_stretch(slot('A'), slot('S'), config) == pytest.approx(8.0)
    assert classify_lateral_stretch(slot('Q'), slot('S'), config) == pytest.approx(4.0)
    assert classify_lateral_stretch(slot('D'), slot('T'), config) is None


def test_classifier_config_from_config():
    config = ClassifierConfig.from_config({
        'center_columns': [4, 7],
        'row_jump_threshold': 3,
        'lateral_stretch': {'same_row_multiplier': 1.0, 'patterns': [{'columns': [1, 3], 'severity': 1.5}]},
    })
    assert config.center_columns == frozenset({4, 7})
    assert config.stretch_severity(3, 1) == pytest.approx(1.5)
    assert is_center_column(slot('F'), config)
    assert not is_center_column(slot('G'), config)

    with pytest.raises(ValueError):
        ClassifierConfig.from_config({'lateral_stretch': {'patterns': [{'columns': [1], 'severity': 1}]}})


def test_classify_bigram_flags():
    flags = classify_bigram(slot('Q'), slot('Z'))
    assert flags.same_finger is SameFingerClass.TWO_ROW_SFB
    assert flags.two_row_jump
    assert not flags.alternation
    assert flags.scissors is None

    flags = classify_bigram(slot('T'), slot('H'))
    assert flags.alternation
    assert flags.same_finger is None
    assert is_center_column(slot('T')) and is_center_column(slot('H'))


def test_two_row_jump_is_superset_of_two_row_sfb():
    for s1, s2 in itertools.product(STANDARD_GEOMETRY.slots.values(), repeat=2):
        flags = classify_bigram(s1, s2)
        if flags.same_finger is SameFingerClass.TWO_ROW_SFB:
            assert flags.two_row_jump


# ============================================================================
# Trigrams
# ============================================================================
def test_the_is_alternation():
    assert classify_trigram(*slots_for('THE')) is TrigramClass.ALTERNATION
    flags = classify_trigram_flags(*slots_for('THE'))
    assert not flags.alt_same_finger
    assert flags.bigram_roll is None


def test_alternation_with_same_finger():
    flags = classify_trigram_flags(*slots_for('FJR'))
    assert flags.primary is TrigramClass.ALTERNATION
    assert flags.alt_same_finger


@pytest.mark.parametrize("keys, expected", [
    ('SDF', TrigramClass.ROLL_IN),
    ('AER', TrigramClass.ROLL_IN),
    ('LKJ', TrigramClass.ROLL_IN),
    ('FDS', TrigramClass.ROLL_OUT),
    ('JKL', TrigramClass.ROLL_OUT),
    ('SFD', TrigramClass.REDIRECT),
    ('ADS', TrigramClass.REDIRECT),
    ('KJL', TrigramClass.REDIRECT),
    ('FRD', TrigramClass.OTHER),
    ('SDJ', TrigramClass.OTHER),
])
def test_trigram_primary_labels(keys, expected):
    assert classify_trigram(*slots_for(keys)) is expected


def test_weak_redirect_has_no_index_finger():
    assert classify_trigram_flags(*slots_for('ADS')).weak_redirect
    assert not classify_trigram_flags(*slots_for('SFD')).weak_redirect
    assert not classify_trigram_flags(*slots_for('SDF')).weak_redirect


def test_bigram_rolls():
    assert classify_bigram_roll(*slots_for('SDJ')) is RollDirection.INWARD
    assert classify_bigram_roll(*slots_for('DSJ')) is RollDirection.OUTWARD
    assert classify_bigram_roll(*slots_for('FLK')) is RollDirection.INWARD
    assert classify_bigram_roll(*slots_for('JKL')) is None
    # Same finger is not a roll
    assert classify_bigram_roll(*slots_for('EDJ')) is None

    flags = classify_trigram_flags(*slots_for('SDJ'))
    assert flags.primary is TrigramClass.OTHER
    assert flags.bigram_roll is RollDirection.INWARD


def test_every_trigram_gets_exactly_one_primary_label():
    keys = [slot(key) for key in "QAZWSXEDCRFVTGBYHNUJMIK,OL.P;/"]
    labels = {label: 0 for label in TrigramClass}
    for triple in itertools.product(keys[::3], keys[1::3], keys[2::3]):
        flags = classify_trigram_flags(*triple)
        labels[flags.primary] += 1
        if flags.alt_same_finger:
            assert flags.primary is TrigramClass.ALTERNATION
        if flags.weak_redirect:
            assert flags.primary is TrigramClass.REDIRECT
        if flags.bigram_roll is not None:
            assert flags.primary is TrigramClass.OTHER

    assert sum(labels.values()) == 10 ** 3
    assert all(count > 0 for count in labels.values())
