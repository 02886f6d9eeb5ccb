"""Tests for lesson generation and the weakness lesson builder."""

import datetime
import random
from pathlib import Path

import pytest

from models.key_stat import KeyStat
from models.lesson_generator import (
    GO_CORPUS,
    MIN_POOL_SIZE,
    PYTHON_CORPUS,
    Corpus,
    LessonGenerator,
    LessonType,
    WeakKey,
    build_candidate_pool,
    get_corpus,
    weak_keys_from_stats,
)

NOW = datetime.datetime(2024, 1, 15, 9, 0, 0)


@pytest.fixture
def generator() -> LessonGenerator:
    return LessonGenerator(GO_CORPUS, random.Random(1234))


@pytest.fixture
def tiny_corpus() -> Corpus:
    return Corpus(
        language="tiny",
        words=["func", "return", "if"],
        bigrams=["fu", "re", "if"],
        symbols=["{}", ":="],
        snippets=["x := 1"],
    )


class TestCorpus:
    def test_get_corpus(self) -> None:
        assert get_corpus("go") is GO_CORPUS
        assert get_corpus(" Python ") is PYTHON_CORPUS

    def test_unknown_language(self) -> None:
        with pytest.raises(ValueError, match="Unknown language"):
            get_corpus("cobol")

    def test_tokens_deduplicated_in_order(self, tiny_corpus: Corpus) -> None:
        assert tiny_corpus.tokens() == ["func", "return", "if", "fu", "re", "{}", ":="]


class TestGenerateLesson:
    @pytest.mark.parametrize(
        "lesson_type,pool",
        [
            (LessonType.WORDS, GO_CORPUS.words),
            (LessonType.BIGRAMS, GO_CORPUS.bigrams),
            (LessonType.SYMBOLS, GO_CORPUS.symbols),
        ],
    )
    def test_token_lessons(self, generator: LessonGenerator, lesson_type: LessonType, pool: list) -> None:
        tokens = generator.generate_lesson(lesson_type, 25).split(" ")
        assert len(tokens) == 25
        assert all(t in pool for t in tokens)

    def test_code_lesson_caps_snippet_count(self, generator: LessonGenerator) -> None:
        lesson = generator.generate_lesson(LessonType.CODE, 50)
        assert len(lesson.split("\n\n")) == len(GO_CORPUS.snippets)

    def test_code_lesson_short(self, generator: LessonGenerator) -> None:
        lesson = generator.generate_lesson(LessonType.CODE, 2)
        parts = lesson.split("\n\n")
        assert len(parts) == 2
        assert all(p in GO_CORPUS.snippets for p in parts)

    def test_seeded_generators_agree(self) -> None:
        a = LessonGenerator(GO_CORPUS, random.Random(7)).generate_lesson(LessonType.WORDS, 10)
        b = LessonGenerator(GO_CORPUS, random.Random(7)).generate_lesson(LessonType.WORDS, 10)
        assert a == b


class TestGenerateFromFile:
    def test_reads_and_strips(self, generator: LessonGenerator, tmp_path: Path) -> None:
        path = tmp_path / "lesson.txt"
        path.write_text("\n  package main\n\n", encoding="utf-8")
        assert generator.generate_from_file(path) == "package main"

    def test_empty_file(self, generator: LessonGenerator, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("  \n\t", encoding="utf-8")
        with pytest.raises(ValueError):
            generator.generate_from_file(str(path))

    def test_missing_file(self, generator: LessonGenerator, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            generator.generate_from_file(tmp_path / "nope.txt")


class TestWeaknessLesson:
    def test_pool_matches_weak_characters(self) -> None:
        pool = build_candidate_pool([WeakKey(key="{", error_rate=0.5)], GO_CORPUS)
        assert pool[0] == "{}"
        assert len(pool) >= MIN_POOL_SIZE

    def test_pool_first_found_order_without_duplicates(self, tiny_corpus: Corpus) -> None:
        weak = [WeakKey(key="f", error_rate=0.5), WeakKey(key="u", error_rate=0.4)]
        pool = build_candidate_pool(weak, tiny_corpus)
        assert pool[:4] == ["func", "if", "fu", "return"]
        assert len(pool) == len(set(pool))

    def test_small_pool_topped_up_with_corpus(self, tiny_corpus: Corpus) -> None:
        pool = build_candidate_pool([WeakKey(key=":", error_rate=0.9)], tiny_corpus)
        assert pool == [":=", "func", "return", "if", "fu", "re", "{}"]

    def test_matching_is_case_sensitive(self, tiny_corpus: Corpus) -> None:
        pool = build_candidate_pool([WeakKey(key="F", error_rate=0.9)], tiny_corpus)
        assert pool == tiny_corpus.tokens()

    def test_lesson_draws_from_pool(self, generator: LessonGenerator) -> None:
        weak = [WeakKey(key="z", error_rate=0.3)]
        pool = build_candidate_pool(weak, GO_CORPUS)
        tokens = generator.generate_weakness_lesson(weak, 20).split(" ")
        assert len(tokens) == 20
        assert all(t in pool for t in tokens)

    def test_lesson_uses_given_corpus(self, generator: LessonGenerator) -> None:
        weak = [WeakKey(key="@", error_rate=0.3)]
        lesson = generator.generate_weakness_lesson(weak, 10, corpus=PYTHON_CORPUS)
        assert all(t in PYTHON_CORPUS.tokens() for t in lesson.split(" "))

    def test_no_weak_keys_gives_vocabulary(self, generator: LessonGenerator) -> None:
        tokens = generator.generate_weakness_lesson([], 15).split(" ")
        assert len(tokens) == 15
        assert all(t in GO_CORPUS.words for t in tokens)

    def test_weak_keys_from_stats_skips_unattempted(self) -> None:
        stats = [
            KeyStat(key="a", errors=1, successes=3, last_practiced=NOW),
            KeyStat(key="b", last_practiced=NOW),
        ]
        assert weak_keys_from_stats(stats) == [WeakKey(key="a", error_rate=0.25)]
