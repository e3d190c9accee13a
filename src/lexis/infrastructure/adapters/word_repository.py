"""
Key-Value Word Repository: implements WordRepository on a KeyValueStore.

All word records live as one list under WORDS_KEY. Writes replace the full
record of one word (last write wins).
"""

import logging
from datetime import UTC, datetime
from typing import Any

from ulid import ULID

from lexis.domain.constants import WORDS_KEY
from lexis.domain.interfaces import KeyValueStore, WordRepository
from lexis.domain.models import SrsState, Word, utcnow

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def generate_word_id() -> str:
    """Generate a stable word ID using ULID."""
    return f"word_{ULID()}"


class KeyValueWordRepository(WordRepository):
    def __init__(self, store: KeyValueStore, key: str = WORDS_KEY):
        self.store = store
        self.key = key

    async def _load_records(self) -> list[dict[str, Any]]:
        records = await self.store.get(self.key, [])
        if not isinstance(records, list):
            logger.warning(f"Ignoring malformed '{self.key}' value of type {type(records).__name__}")
            return []
        return [r for r in records if isinstance(r, dict)]

    async def list_words(self) -> list[Word]:
        words: list[Word] = []
        for record in await self._load_records():
            try:
                words.append(Word.from_record(record))
            except (TypeError, ValueError, OverflowError) as e:
                logger.warning(f"Skipping unreadable word record: {e}")
        return words

    async def get_word(self, word_id: str) -> Word | None:
        for word in await self.list_words():
            if word.id == word_id:
                return word
        return None

    async def add_word(
        self,
        word: str,
        meaning: str,
        *,
        example: str | None = None,
        phonetic: str | None = None,
        audio_url: str | None = None,
        category: str | None = None,
        difficulty: str = "medium",
        now: datetime | None = None,
    ) -> Word:
        """Create a word that is due immediately with first-review defaults."""
        now = now or utcnow()
        new_word = Word(
            id=generate_word_id(),
            word=word.strip(),
            meaning=meaning.strip(),
            example=example,
            phonetic=phonetic,
            audio_url=audio_url,
            category=category,
            difficulty=difficulty,
            srs=SrsState(next_review=now),
            created_at=now,
        )
        records = await self._load_records()
        records.append(new_word.to_record())
        await self.store.set(self.key, records)
        logger.info(f"Added word '{new_word.word}' ({new_word.id})")
        return new_word

    async def get_due_words(self, now: datetime, limit: int | None = None) -> list[Word]:
        due = [w for w in await self.list_words() if w.is_due(now)]
        due.sort(key=lambda w: (w.srs.next_review or _EPOCH) if w.srs else _EPOCH)
        if limit is not None:
            due = due[:limit]
        return due

    async def update_word(self, word_id: str, record: dict[str, Any]) -> bool:
        records = await self._load_records()
        for index, existing in enumerate(records):
            if existing.get("id") == word_id:
                records[index] = {**record, "id": word_id}
                await self.store.set(self.key, records)
                return True
        logger.warning(f"update_word: no word with id {word_id}")
        return False

    async def next_due_at(self, now: datetime) -> datetime | None:
        upcoming = [
            w.srs.next_review
            for w in await self.list_words()
            if w.srs and w.srs.next_review and w.srs.next_review > now
        ]
        return min(upcoming, default=None)
