import json

import pandas as pd
import pytest

from analyze_layouts import main
from layout_metrics.cli_utils import (
    EXIT_ERROR, EXIT_INVALID_INPUT, EXIT_OK, StandardCLIParser, get_corpus_from_args
)
from layout_metrics.layout_utils import qwerty_mapping

from conftest import DVORAK_QWERTY_ORDER, SAMPLE_TEXT

QWERTY = "qwertyuiopasdfghjkl;zxcvbnm,./"


def test_single_layout_detailed_output(capsys):
    assert main(['--qwerty', QWERTY, '--name', 'qwerty', '--text', SAMPLE_TEXT, '--quiet']) == EXIT_OK
    out = capsys.readouterr().out
    assert out.startswith("Layout: qwerty")
    assert "Same finger bigrams pct" in out


def test_csv_output(capsys):
    assert main(['--qwerty', QWERTY, '--text', SAMPLE_TEXT, '--csv', '--quiet']) == EXIT_OK
    assert capsys.readouterr().out.startswith("layout_name,effort,")


def test_letters_and_positions(capsys):
    letters = "abcdefghijklmnopqrstuvwxyz"
    positions = "".join(qwerty_mapping()[c] for c in letters)
    assert main(['--letters', letters, '--positions', positions, '--text', 'hello world',
                 '--score-only', '--quiet']) == EXIT_OK
    assert len(capsys.readouterr().out.split()) == 26


def test_layout_file_comparison(tmp_path, capsys):
    layout_file = tmp_path / "layouts.json"
    layout_file.write_text(json.dumps([
        {"name": "qwerty", "mapping": qwerty_mapping()},
        {"name": "dvorak", "mapping": dict(zip(DVORAK_QWERTY_ORDER, "QWERTYUIOPASDFGHJKL;ZXCVBNM,./"))},
    ]))
    text_file = tmp_path / "corpus.txt"
    text_file.write_text(SAMPLE_TEXT)
    compare_csv = tmp_path / "comparison.csv"

    code = main(['--layout-file', str(layout_file), '--text-file', str(text_file),
                 '--compare-csv', str(compare_csv), '--sort-by', 'distance', '--quiet'])
    assert code == EXIT_OK
    assert "Ranked by distance" in capsys.readouterr().out
    assert list(pd.read_csv(compare_csv)['layout']) == ['qwerty', 'dvorak']


def test_frequency_tables(tmp_path):
    chars = tmp_path / "chars.csv"
    chars.write_text("char,frequency\n" + "".join(f"{c},1\n" for c in "etaoin"))
    bigrams = tmp_path / "bigrams.csv"
    bigrams.write_text("bigram,frequency\nth,2\nhe,1\n")

    assert main(['--qwerty', QWERTY, '--char-freq', str(chars), '--bigram-freq', str(bigrams),
                 '--quiet']) == EXIT_OK


def test_duplicate_assignment_is_invalid_input(capsys):
    assert main(['--letters', 'ab', '--positions', 'AA', '--text', 'abc', '--quiet']) == EXIT_INVALID_INPUT
    assert "assigned more than once" in capsys.readouterr().err


def test_missing_letters_is_invalid_input():
    assert main(['--qwerty', 'qwerty', '--text', 'abc', '--quiet']) == EXIT_INVALID_INPUT


def test_empty_corpus_is_invalid_input():
    assert main(['--qwerty', QWERTY, '--text', '1234 !!!', '--quiet']) == EXIT_INVALID_INPUT


def test_empty_layout_file(tmp_path, capsys):
    layout_file = tmp_path / "layouts.json"
    layout_file.write_text("[]")

    assert main(['--layout-file', str(layout_file), '--text', SAMPLE_TEXT, '--quiet']) == EXIT_ERROR
    assert "empty list" in capsys.readouterr().err


def test_missing_text_file(tmp_path):
    assert main(['--qwerty', QWERTY, '--text-file', str(tmp_path / "missing.txt"), '--quiet']) == EXIT_ERROR


@pytest.mark.parametrize("argv", [
    ['--text', 'abc'],
    ['--qwerty', QWERTY],
    ['--qwerty', QWERTY, '--letters', 'abc', '--text', 'abc'],
    ['--letters', 'abc', '--text', 'abc'],
    ['--qwerty', QWERTY, '--text', 'abc', '--bigram-freq', 'b.csv'],
    ['--qwerty', QWERTY, '--text', 'abc', '--workers', '0'],
])
def test_parser_rejects_inconsistent_arguments(argv):
    with pytest.raises(SystemExit):
        StandardCLIParser().parse_args(argv)


def test_cross_word_flag():
    args = StandardCLIParser().parse_args(['--qwerty', QWERTY, '--text', 'ab cd', '--cross-word'])
    corpus = get_corpus_from_args(args)
    assert ('b', 'c') in corpus.bigram_freq
