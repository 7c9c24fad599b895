"""Tests for archery.clubs module."""

import json

from archery.clubs import (
    BUILT_IN_CLUBS,
    LEGACY_STORAGE_KEYS,
    STORAGE_KEY,
    ClubStore,
    JsonClubStorage,
    MemoryClubStorage,
    merge_with_built_ins,
)


class TestClubStore:
    """Tests for vocabulary mutation and lookup."""

    def test_starts_with_built_ins(self, club_store):
        clubs = club_store.get_all()
        assert len(clubs) == len(BUILT_IN_CLUBS)
        assert not any(c.user_added for c in clubs)

    def test_get_all_returns_copy(self, club_store):
        club_store.get_all().clear()
        assert len(club_store.get_all()) == len(BUILT_IN_CLUBS)

    def test_add_normalizes_code(self, club_store):
        assert club_store.add(' new ', ' New Archers ')
        club = club_store.get_all()[-1]
        assert (club.code, club.name, club.user_added) == ('NEW', 'New Archers', True)

    def test_add_duplicate_code_rejected(self, club_store):
        assert not club_store.add('tlvk', 'Another School')
        assert len(club_store.get_all()) == len(BUILT_IN_CLUBS)

    def test_add_empty_rejected(self, club_store):
        assert not club_store.add('', 'Name')
        assert not club_store.add('CODE', '  ')

    def test_remove_user_club(self, club_store):
        club_store.add('NEW', 'New Archers')
        assert club_store.remove('new')
        assert 'NEW' not in {c.code for c in club_store.get_all()}

    def test_remove_built_in_rejected(self, club_store):
        assert not club_store.remove('TLVK')
        assert 'TLVK' in {c.code for c in club_store.get_all()}

    def test_remove_unknown_rejected(self, club_store):
        assert not club_store.remove('NOPE')

    def test_reset_drops_user_clubs(self, club_store):
        club_store.add('NEW', 'New Archers')
        club_store.reset()
        assert len(club_store.get_all()) == len(BUILT_IN_CLUBS)

    def test_suggestions_prefix_before_substring(self, club_store):
        codes = [c.code for c in club_store.suggestions('tartu')]
        assert codes[:2] == ['TVSK', 'TVK']

    def test_suggestions_substring(self, club_store):
        codes = [c.code for c in club_store.suggestions('ilves')]
        assert codes == ['JVI']

    def test_suggestions_limit(self, club_store):
        assert len(club_store.suggestions('', limit=3)) == 3


class TestSubscribe:
    """Tests for change notification."""

    def test_listener_called_on_every_mutation(self, club_store):
        calls = []
        club_store.subscribe(lambda: calls.append(len(club_store.get_all())))
        club_store.add('NEW', 'New Archers')
        club_store.remove('NEW')
        club_store.reset()
        assert calls == [len(BUILT_IN_CLUBS) + 1, len(BUILT_IN_CLUBS), len(BUILT_IN_CLUBS)]

    def test_failed_mutation_does_not_notify(self, club_store):
        calls = []
        club_store.subscribe(lambda: calls.append(1))
        club_store.add('TLVK', 'Duplicate')
        club_store.remove('TLVK')
        assert calls == []

    def test_unsubscribe(self, club_store):
        calls = []
        unsubscribe = club_store.subscribe(lambda: calls.append(1))
        unsubscribe()
        club_store.add('NEW', 'New Archers')
        assert calls == []


class TestPersistence:
    """Tests for storage and merging with built-ins."""

    def test_user_clubs_survive_reload(self):
        storage = MemoryClubStorage()
        ClubStore(storage).add('NEW', 'New Archers')
        reloaded = ClubStore(storage)
        assert reloaded.get_all()[-1].code == 'NEW'
        assert reloaded.get_all()[-1].user_added

    def test_saved_under_current_key(self):
        storage = MemoryClubStorage()
        ClubStore(storage).add('NEW', 'New Archers')
        entry = storage.data[STORAGE_KEY][-1]
        assert entry == {'code': 'NEW', 'name': 'New Archers', 'userAdded': True}

    def test_built_ins_win_over_stored_names(self):
        stored = {STORAGE_KEY: [{'code': 'TLVK', 'name': 'Old Name', 'userAdded': False}]}
        clubs = merge_with_built_ins(stored)
        assert next(c for c in clubs if c.code == 'TLVK').name == 'Tallinna Vibukool'
        assert len(clubs) == len(BUILT_IN_CLUBS)

    def test_legacy_key_merged(self):
        stored = {LEGACY_STORAGE_KEYS[0]: [
            {'code': 'VILJ', 'name': 'Viljandi Vibukool'},
            {'code': 'SAG', 'name': 'Sagittarius'},
        ]}
        clubs = merge_with_built_ins(stored)
        assert clubs[-1].code == 'VILJ'
        assert clubs[-1].user_added
        assert len(clubs) == len(BUILT_IN_CLUBS) + 1

    def test_json_storage_round_trip(self, tmp_path):
        path = tmp_path / 'clubs.json'
        ClubStore(JsonClubStorage(path)).add('NEW', 'Nõmme Archers')
        data = json.loads(path.read_text(encoding='utf-8'))
        assert data[STORAGE_KEY][-1]['name'] == 'Nõmme Archers'
        assert ClubStore(JsonClubStorage(path)).get_all()[-1].code == 'NEW'

    def test_corrupt_json_falls_back_to_built_ins(self, tmp_path):
        path = tmp_path / 'clubs.json'
        path.write_text('{not json', encoding='utf-8')
        store = ClubStore(JsonClubStorage(path))
        assert len(store.get_all()) == len(BUILT_IN_CLUBS)
