from datetime import timedelta

import pytest

from lexis.domain.constants import WORDS_KEY
from lexis.domain.models import SrsState, Word
from lexis.infrastructure.adapters.stores import JsonFileStore, MemoryStore
from lexis.infrastructure.adapters.word_repository import (
    KeyValueWordRepository,
    generate_word_id,
)


def test_generate_word_id_is_unique():
    first, second = generate_word_id(), generate_word_id()
    assert first.startswith("word_")
    assert first != second


@pytest.mark.asyncio
async def test_add_word_is_due_immediately(repo, now):
    word = await repo.add_word(" lucid ", "clear", category="adjectives", now=now)

    assert word.word == "lucid"
    assert word.srs.next_review == now
    assert word.srs.repetitions == 0
    assert word.created_at == now
    assert await repo.get_word(word.id) == word
    assert [w.id for w in await repo.get_due_words(now)] == [word.id]


@pytest.mark.asyncio
async def test_due_words_sorted_and_limited(now):
    words = [
        Word(id="late", word="c", meaning="", srs=SrsState(next_review=now - timedelta(minutes=1))),
        Word(id="future", word="d", meaning="", srs=SrsState(next_review=now + timedelta(days=1))),
        Word(id="early", word="b", meaning="", srs=SrsState(next_review=now - timedelta(days=3))),
        Word(id="fresh", word="a", meaning=""),
    ]
    repo = KeyValueWordRepository(MemoryStore({WORDS_KEY: [w.to_record() for w in words]}))

    due = await repo.get_due_words(now)
    assert [w.id for w in due] == ["fresh", "early", "late"]
    assert [w.id for w in await repo.get_due_words(now, limit=2)] == ["fresh", "early"]
    assert await repo.next_due_at(now) == now + timedelta(days=1)


@pytest.mark.asyncio
async def test_unreadable_records_are_skipped(now):
    store = MemoryStore(
        {WORDS_KEY: [{"id": "ok", "word": "fine", "meaning": ""}, {"meaning": "no id"}, "junk"]}
    )
    repo = KeyValueWordRepository(store)
    assert [w.id for w in await repo.list_words()] == ["ok"]


@pytest.mark.asyncio
async def test_malformed_key_value_yields_nothing(now):
    repo = KeyValueWordRepository(MemoryStore({WORDS_KEY: {"not": "a list"}}))
    assert await repo.get_due_words(now) == []
    assert await repo.next_due_at(now) is None


@pytest.mark.asyncio
async def test_update_word_replaces_full_record(repo, now):
    word = await repo.add_word("lucid", "clear", now=now)
    updated = word.with_srs(SrsState(repetitions=1, interval=25, next_review=now + timedelta(minutes=25)))

    assert await repo.update_word(word.id, updated.to_record()) is True
    assert (await repo.get_word(word.id)).srs.interval == 25
    assert await repo.get_due_words(now) == []


@pytest.mark.asyncio
async def test_update_unknown_word_reports_failure(repo):
    assert await repo.update_word("missing", {"id": "missing", "word": "x"}) is False


@pytest.mark.asyncio
async def test_overflowing_srs_values_do_not_break_the_deck(tmp_path, now):
    path = tmp_path / "vocab.json"
    path.write_text(
        '{"vocab_words": ['
        '{"id": "bad", "word": "x", "meaning": "", "srs": {"interval": Infinity, "repetitions": 1e999}},'
        '{"id": "ok", "word": "y", "meaning": ""}'
        "]}"
    )
    repo = KeyValueWordRepository(JsonFileStore(path))

    due = await repo.get_due_words(now)

    assert {w.id for w in due} == {"bad", "ok"}
    bad = next(w for w in due if w.id == "bad")
    assert bad.srs.interval == 10
    assert bad.srs.repetitions == 0
