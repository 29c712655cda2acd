import math
import pickle

import pytest

from layout_metrics.corpus import Corpus, CorpusConfig, build_corpus, check_consistency, count_text
from layout_metrics.errors import CorpusError, EmptyCorpusError
from layout_metrics.text_utils import (
    NgramCounts, clean_text_for_analysis, count_chunk, extract_segments, plan_chunks
)

from conftest import SAMPLE_TEXT


def test_word_mode_counts():
    corpus = build_corpus("the quick brown fox")

    # 3 + 5 + 5 + 3 characters, 2 + 4 + 4 + 2 bigrams, 1 + 3 + 3 + 1 trigrams
    assert corpus.total_chars == 16
    assert corpus.total_bigrams == 12
    assert corpus.total_trigrams == 8
    assert corpus.char_freq['e'] == pytest.approx(1 / 16)
    assert corpus.char_freq['o'] == pytest.approx(2 / 16)
    assert corpus.bigram_freq[('t', 'h')] == pytest.approx(1 / 12)
    assert ('e', 'q') not in corpus.bigram_freq
    assert corpus.trigram_freq[('t', 'h', 'e')] == pytest.approx(1 / 8)


def test_frequencies_sum_to_one():
    corpus = build_corpus(SAMPLE_TEXT)
    for table in (corpus.char_freq, corpus.bigram_freq, corpus.trigram_freq):
        assert math.fsum(table.values()) == pytest.approx(1.0)


def test_cross_word_mode_spans_word_boundaries():
    corpus = build_corpus("the quick", CorpusConfig(cross_word_ngrams=True))
    assert corpus.total_chars == 8
    assert corpus.total_bigrams == 7
    assert ('e', 'q') in corpus.bigram_freq
    assert ('h', 'e', 'q') in corpus.trigram_freq


def test_normalization_treats_punctuation_as_boundary():
    assert clean_text_for_analysis("Don't STOP--now!") == "don t stop now"
    assert extract_segments("a-b  c") == ['a', 'b', 'c']
    assert extract_segments("a-b  c", cross_word_ngrams=True) == ['abc']

    corpus = build_corpus("Hello, World")
    assert ('o', 'w') not in corpus.bigram_freq
    assert set(corpus.char_freq) <= set('helowrd')


@pytest.mark.parametrize("text", ["", "   \n\t", "1234 !!! ---", "¿¡ 42"])
def test_empty_corpus_raises(text):
    with pytest.raises(EmptyCorpusError):
        build_corpus(text)


def test_empty_corpus_error_is_a_corpus_error():
    with pytest.raises(CorpusError):
        build_corpus(["...", "???"])


@pytest.mark.parametrize("chunk_chars", [1, 2, 3, 7, 50])
def test_counts_independent_of_chunk_size(chunk_chars):
    reference = build_corpus(SAMPLE_TEXT, name="sample")
    chunked = build_corpus(SAMPLE_TEXT, CorpusConfig(chunk_chars=chunk_chars), name="sample")
    assert chunked == reference


@pytest.mark.parametrize("chunk_chars", [1, 4, 9])
def test_cross_word_counts_independent_of_chunk_size(chunk_chars):
    base = CorpusConfig(cross_word_ngrams=True)
    reference = build_corpus(SAMPLE_TEXT, base)
    chunked = build_corpus(SAMPLE_TEXT, CorpusConfig(cross_word_ngrams=True, chunk_chars=chunk_chars))
    assert chunked.version == reference.version
    assert chunked.bigram_freq == reference.bigram_freq
    assert chunked.trigram_freq == reference.trigram_freq


def test_chunk_merge_order_does_not_matter():
    segments = extract_segments(SAMPLE_TEXT, cross_word_ngrams=True)
    chunks = plan_chunks(segments, chunk_chars=5)
    assert len(chunks) > 2

    forward = NgramCounts()
    for chunk in chunks:
        forward.update(count_chunk(chunk))
    backward = NgramCounts()
    for chunk in reversed(chunks):
        backward.update(count_chunk(chunk))

    assert forward == backward
    assert forward.total_chars == len(segments[0])
    assert forward.total_bigrams == len(segments[0]) - 1
    assert forward.total_trigrams == len(segments[0]) - 2


def test_plan_chunks_rejects_non_positive_size():
    with pytest.raises(ValueError):
        plan_chunks(["abc"], chunk_chars=0)


def test_source_order_does_not_change_frequencies():
    first = "the quick brown fox"
    second = "jumps over the lazy dog"
    forward = build_corpus([first, second])
    backward = build_corpus([second, first])
    assert forward.char_freq == backward.char_freq
    assert forward.bigram_freq == backward.bigram_freq
    assert forward.version == backward.version


def test_version_changes_with_counts_and_options():
    assert build_corpus("abc").version == build_corpus("abc").version
    assert build_corpus("abc").version != build_corpus("abd").version
    assert build_corpus("ab cd").version != build_corpus("ab cd", CorpusConfig(cross_word_ngrams=True)).version


def test_workers_give_same_corpus():
    sequential = build_corpus([SAMPLE_TEXT, SAMPLE_TEXT.upper()], CorpusConfig(chunk_chars=16))
    parallel = build_corpus([SAMPLE_TEXT, SAMPLE_TEXT.upper()], CorpusConfig(chunk_chars=16, workers=2))
    assert parallel == sequential


def test_count_text_with_custom_mapper():
    calls = []

    def recording_map(func, items):
        calls.append(len(items))
        return map(func, items)

    counts = count_text("abc abc", CorpusConfig(chunk_chars=2), mapper=recording_map)
    assert calls and calls[0] >= 2
    assert counts.chars == {'a': 2, 'b': 2, 'c': 2}


def test_consistency_flags_divergent_sources(caplog):
    corpus = build_corpus(["aaab", "abbb"], CorpusConfig(consistency_threshold=0.2))

    flagged = {(flag.kind, flag.ngram) for flag in corpus.consistency}
    assert flagged == {
        ('char', 'a'), ('char', 'b'), ('bigram', 'aa'), ('bigram', 'bb'),
        ('trigram', 'aaa'), ('trigram', 'aab'), ('trigram', 'abb'), ('trigram', 'bbb'),
    }

    worst = corpus.consistency[0]
    assert worst.kind == 'bigram'
    assert worst.deviation == pytest.approx(1.0)

    char_a = next(flag for flag in corpus.consistency if flag.ngram == 'a')
    assert char_a.frequency == pytest.approx(0.5)
    assert char_a.min_frequency == pytest.approx(0.25)
    assert char_a.max_frequency == pytest.approx(0.75)
    assert char_a.deviation == pytest.approx(0.5)

    assert "disagree" in caplog.text


def test_consistency_flags_trigram_only_disagreement():
    # Same characters and bigrams in both sources, different trigrams
    corpus = build_corpus(["abc ca b", "ab bca c"], CorpusConfig(consistency_threshold=0.2))

    flagged = {(flag.kind, flag.ngram) for flag in corpus.consistency}
    assert flagged == {('trigram', 'abc'), ('trigram', 'bca')}
    assert all(flag.deviation == pytest.approx(1.0) for flag in corpus.consistency)


def test_consistency_check_never_fails_the_build():
    agreeing = build_corpus(["abab", "baba"], CorpusConfig(consistency_threshold=0.5))
    assert agreeing.total_chars == 8

    disabled = build_corpus(["aaab", "abbb"], CorpusConfig(consistency_threshold=None))
    assert disabled.consistency == ()


def test_check_consistency_skips_sources_without_windows():
    with_bigrams = count_text("ab", CorpusConfig())
    single_chars = count_text("a b", CorpusConfig())
    flags = check_consistency([with_bigrams, single_chars], threshold=0.2)
    assert all(flag.kind == 'char' for flag in flags)


def test_from_frequencies_renormalizes():
    corpus = Corpus.from_frequencies({'a': 30, 'B': 10}, {'ab': 2, ('b', 'a'): 2}, {'aba': 5})

    assert corpus.char_freq == {'a': pytest.approx(0.75), 'b': pytest.approx(0.25)}
    assert corpus.bigram_freq[('a', 'b')] == pytest.approx(0.5)
    assert corpus.trigram_freq == {('a', 'b', 'a'): pytest.approx(1.0)}
    assert corpus.total_chars == corpus.total_bigrams == corpus.total_trigrams == 0


def test_from_frequencies_rejects_invalid_tables():
    with pytest.raises(CorpusError):
        Corpus.from_frequencies({'a': -1.0})
    with pytest.raises(CorpusError):
        Corpus.from_frequencies({'a': float('nan')})
    with pytest.raises(CorpusError):
        Corpus.from_frequencies({'a': 1.0}, {'abc': 1.0})
    with pytest.raises(EmptyCorpusError):
        Corpus.from_frequencies({'a': 0.0})


def test_corpus_summary_mentions_totals():
    summary = build_corpus("the quick brown fox", name="fox").summary()
    assert "fox" in summary
    assert "Characters: 16" in summary


def test_corpus_tables_are_read_only(sample_corpus):
    char_freq = dict(sample_corpus.char_freq)

    with pytest.raises(TypeError):
        sample_corpus.char_freq['q'] = 50.0
    with pytest.raises(TypeError):
        sample_corpus.bigram_freq[('q', 'u')] = 1.0
    with pytest.raises(TypeError):
        del sample_corpus.trigram_freq[('t', 'h', 'e')]

    assert sample_corpus.char_freq == char_freq


def test_corpus_survives_pickling(sample_corpus):
    restored = pickle.loads(pickle.dumps(sample_corpus))

    assert restored == sample_corpus
    assert restored.version == sample_corpus.version
    with pytest.raises(TypeError):
        restored.char_freq['q'] = 50.0
