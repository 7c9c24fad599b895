"""Reference vocabulary of known clubs with pluggable persistence.

Built-in clubs ship with the package and always win on reload; clubs added at
runtime are flagged ``user_added`` and are the only ones that can be removed.
Consumers read the list through ``ClubStore.get_all()`` on every use instead of
caching it, so matching always sees the current vocabulary.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Protocol

from archery import Club

log = logging.getLogger(__name__)

STORAGE_KEY = 'archery_clubs_v3'
LEGACY_STORAGE_KEYS = ('archery_clubs_v2',)

DEFAULT_SUGGESTION_LIMIT = 8

BUILT_IN_CLUBS: tuple[tuple[str, str], ...] = (
    ('TLVK', 'Tallinna Vibukool'),
    ('VVVK', 'Vana-Võidu Vibuklub'),
    ('SAG', 'Sagittarius'),
    ('TVSK', 'Tartu Valla Spordiklubi'),
    ('JVI', 'Järvakandi Ilves'),
    ('PVM', 'Pärnu Meelis'),
    ('KSK', 'Kajamaa Spordiklubi'),
    ('SJK', 'Suure-Jaani VK'),
    ('STR', 'STORM SK'),
    ('MAG', 'Mägilased'),
    ('TYRI', 'Türi Vibukool'),
    ('BH', 'Baltic Hunter SC'),
    ('KVK', 'Kagu Vibuklubi'),
    ('LVL', 'Lääne Vibulaskjad'),
    ('VVK', 'Vooremaa Vibuklubi'),
    ('SVK', 'Saarde Vibuklubi'),
    ('TL', 'TäheLend'),
    ('NS', 'NS Archery Club'),
    ('JAK', 'Järvamaa Amburite Klubi'),
    ('SMA', 'Saaremaa Vibuklubi'),
    ('TVK', 'Tartu Vibuklubi'),
)


class ClubStorage(Protocol):
    """Durable key-value storage for the serialized vocabulary."""

    def load(self) -> dict[str, list[dict]]:
        """Return all stored entries, keyed by storage version key."""

    def save(self, key: str, entries: list[dict]) -> None:
        """Persist the entries under the given version key."""


class MemoryClubStorage:
    """Process-local storage, used in tests and when no file is configured."""

    def __init__(self, data: dict[str, list[dict]] | None = None):
        self.data: dict[str, list[dict]] = dict(data or {})

    def load(self) -> dict[str, list[dict]]:
        return dict(self.data)

    def save(self, key: str, entries: list[dict]) -> None:
        self.data[key] = list(entries)


class JsonClubStorage:
    """Stores the vocabulary in a JSON file as ``{version_key: [entries]}``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, list[dict]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (ValueError, OSError) as exc:
            log.warning("Club file %s unreadable, using built-in clubs: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            log.warning("Club file %s has unexpected structure, ignored", self.path)
            return {}
        return data

    def save(self, key: str, entries: list[dict]) -> None:
        data = self.load()
        data[key] = entries
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2), encoding='utf-8',
        )


def _built_ins(built_ins: tuple[tuple[str, str], ...]) -> list[Club]:
    return [Club(code=code, name=name) for code, name in built_ins]


def merge_with_built_ins(
    stored: dict[str, list[dict]],
    built_ins: tuple[tuple[str, str], ...] = BUILT_IN_CLUBS,
) -> list[Club]:
    """Merge stored vocabulary data with the current built-ins.

    The current key is preferred; otherwise the newest legacy key is used.
    Built-in entries always come first with their shipped names. Every stored
    entry whose code is not a built-in is kept verbatim as a user-added club,
    including clubs that were built-ins in an older release.

    Args:
        stored: Raw storage content keyed by version key.
        built_ins: Shipped (code, name) pairs.

    Returns:
        Merged club list, built-ins first.
    """
    entries: list = []
    for key in (STORAGE_KEY, *LEGACY_STORAGE_KEYS):
        if key in stored:
            entries = stored[key]
            break

    clubs = _built_ins(built_ins)
    seen = {c.code for c in clubs}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        code = str(entry.get('code', '')).strip().upper()
        name = str(entry.get('name', '')).strip()
        if not code or not name or code in seen:
            continue
        seen.add(code)
        clubs.append(Club(code=code, name=name, user_added=True))
    return clubs


class ClubStore:
    """Mutable club vocabulary with change notification."""

    def __init__(
        self,
        storage: ClubStorage | None = None,
        built_ins: tuple[tuple[str, str], ...] = BUILT_IN_CLUBS,
    ):
        self._storage = storage if storage is not None else MemoryClubStorage()
        self._built_in_pairs = tuple(built_ins)
        self._listeners: list[Callable[[], None]] = []
        self._clubs = merge_with_built_ins(self._storage.load(), self._built_in_pairs)

    def get_all(self) -> list[Club]:
        """Current full list, built-ins first, then user-added clubs."""
        return list(self._clubs)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add(self, code: str, name: str) -> bool:
        """Add a user club. Returns False for empty input or a duplicate code."""
        code = (code or '').strip().upper()
        name = (name or '').strip()
        if not code or not name:
            return False
        if any(c.code.upper() == code for c in self._clubs):
            return False
        self._clubs.append(Club(code=code, name=name, user_added=True))
        self._commit()
        log.info("Club added: %s (%s)", code, name)
        return True

    def remove(self, code: str) -> bool:
        """Remove a user club. Returns False if unknown or built-in."""
        code = (code or '').strip().upper()
        club = next((c for c in self._clubs if c.code.upper() == code), None)
        if club is None or not club.user_added:
            return False
        self._clubs = [c for c in self._clubs if c is not club]
        self._commit()
        log.info("Club removed: %s", code)
        return True

    def suggestions(self, text: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[Club]:
        """Autocomplete: prefix matches on code or name first, then substring matches."""
        query = (text or '').strip().lower()
        if not query:
            return self._clubs[:limit]
        prefix = [
            c for c in self._clubs
            if c.code.lower().startswith(query) or c.name.lower().startswith(query)
        ]
        contains = [
            c for c in self._clubs
            if c not in prefix and (query in c.code.lower() or query in c.name.lower())
        ]
        return (prefix + contains)[:limit]

    def reset(self) -> None:
        """Drop all user-added clubs."""
        self._clubs = _built_ins(self._built_in_pairs)
        self._commit()
        log.info("Club list reset to %d built-in clubs", len(self._clubs))

    def _commit(self) -> None:
        self._storage.save(STORAGE_KEY, [
            {'code': c.code, 'name': c.name, 'userAdded': c.user_added}
            for c in self._clubs
        ])
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener()
