"""Tests for archery.parser module."""

import pytest

from archery import Field
from archery.clubs import ClubStore, MemoryClubStorage
from archery.parser import parse_row, parse_rows, resequence
from archery.reader import parse_csv_text

ESTONIAN_HEADER = 'Kuupäev,Sportlane,Klubi,Võistlusklass,Vanuserühm,Distants,Tulemus,Võistlus'


def _row(**kwargs) -> dict:
    """Create an English-header raw row with defaults."""
    defaults = {
        'Date': '2024-12-15', 'Athlete': 'Mari Mägi', 'Club': 'TLVK',
        'Bow Type': 'Recurve', 'Age Class': 'U21', 'Gender': 'Women',
        'Shooting Exercise': '2x18m', 'Result': '580', 'Competition': 'Tallinn Open 2024',
    }
    defaults.update(kwargs)
    return defaults


def _fields(record) -> set:
    return {c.field for c in record.corrections}


class TestEndToEnd:
    """Scenario tests over full rows."""

    def test_estonian_row(self, club_store):
        text = f"{ESTONIAN_HEADER}\n15.12.2024,Mari Mägi,TLVK,Sportvibu naised,U21,2x18m,580,Tallinn Open 2024\n"
        [r] = parse_csv_text(text, club_store)
        assert r.date == '2024-12-15'
        assert r.athlete == 'Mari Mägi'
        assert r.club == 'TLVK'
        assert r.confidence == 100
        assert r.bow_type == 'Recurve'
        assert r.age_class == 'U21'
        assert r.gender == 'Women'
        assert r.distance == '2x18m'
        assert r.result == 580
        assert r.competition == 'Tallinn Open 2024'
        assert not r.needs_review
        assert {c.field for c in r.corrections} == {Field.BOW_TYPE}

    def test_fuzzy_club_needs_review(self):
        store = ClubStore(MemoryClubStorage(), built_ins=(('TLK', 'Tallinna Laskurklubi'),))
        r = parse_row(_row(Club='Tallinna Laskeklubi'), store)
        assert r.club == 'TLK'
        assert 80 <= r.confidence < 90
        assert r.needs_review
        [c] = [c for c in r.corrections if c.field is Field.CLUB]
        assert (c.original, c.corrected, c.method) == ('Tallinna Laskeklubi', 'TLK', 'fuzzy')

    def test_score_over_maximum(self, club_store):
        r = parse_row(_row(**{'Shooting Exercise': '70m', 'Result': '800'}), club_store)
        [c] = [c for c in r.corrections if c.field is Field.RESULT]
        assert c.method == 'validation'
        assert c.confidence == 0
        assert r.needs_review
        assert r.result == 800

    def test_high_valid_score_not_flagged_by_default(self, club_store):
        r = parse_row(_row(**{'Shooting Exercise': '2x70m', 'Result': '700'}), club_store)
        assert Field.RESULT not in _fields(r)
        assert not r.needs_review

    def test_high_valid_score_flagged_on_request(self, club_store):
        r = parse_row(_row(**{'Shooting Exercise': '2x70m', 'Result': '700'}), club_store, flag_suspicious=True)
        [c] = [c for c in r.corrections if c.field is Field.RESULT]
        assert c.confidence == 50
        assert r.needs_review

    def test_negative_score(self, club_store):
        r = parse_row(_row(Result='-5'), club_store)
        assert r.result == -5
        assert Field.RESULT in _fields(r)
        assert r.needs_review

    def test_unparseable_score(self, club_store):
        r = parse_row(_row(Result='DNS'), club_store)
        assert r.result == 0
        [c] = [c for c in r.corrections if c.field is Field.RESULT]
        assert c.original == 'DNS'
        assert r.needs_review


class TestCorrections:
    """Tests for which normalizations are logged."""

    def test_unknown_bow_type_zero_confidence(self, club_store):
        r = parse_row(_row(**{'Bow Type': 'Traditsioonivibu'}), club_store)
        assert r.bow_type == 'Recurve'
        [c] = [c for c in r.corrections if c.field is Field.BOW_TYPE]
        assert (c.original, c.method, c.confidence) == ('Traditsioonivibu', 'translation', 0)

    def test_translated_bow_type(self, club_store):
        r = parse_row(_row(**{'Bow Type': 'Plokkvibu'}), club_store)
        assert r.bow_type == 'Compound'
        [c] = [c for c in r.corrections if c.field is Field.BOW_TYPE]
        assert c.confidence == 100

    def test_defaulted_gender_logged(self, club_store):
        r = parse_row(_row(Gender=''), club_store)
        assert r.gender == 'Men'
        [c] = [c for c in r.corrections if c.field is Field.GENDER]
        assert (c.corrected, c.confidence) == ('Men', 0)

    def test_unrecognized_age_class_logged(self, club_store):
        r = parse_row(_row(**{'Age Class': 'Juuniorid'}), club_store)
        assert r.age_class == 'Adult'
        [c] = [c for c in r.corrections if c.field is Field.AGE_CLASS]
        assert c.confidence == 0

    def test_distance_change_logged(self, club_store):
        r = parse_row(_row(**{'Shooting Exercise': '18'}), club_store)
        assert r.distance == '18m'
        [c] = [c for c in r.corrections if c.field is Field.DISTANCE]
        assert (c.original, c.corrected) == ('18', '18m')

    def test_club_name_is_exact(self, club_store):
        r = parse_row(_row(Club='Tallinna Vibukool'), club_store)
        assert r.club == 'TLVK'
        assert Field.CLUB not in _fields(r)

    def test_split_name_columns(self, club_store):
        row = _row()
        del row['Athlete']
        row.update({'Eesnimi': 'mari', 'Perekonnanimi': 'mägi'})
        assert parse_row(row, club_store).athlete == 'Mari Mägi'

    def test_original_data_kept(self, club_store):
        row = _row(Notes='late entry')
        r = parse_row(row, club_store)
        assert r.original_data == row

    def test_review_threshold_parameter(self):
        store = ClubStore(MemoryClubStorage(), built_ins=(('TLK', 'Tallinna Laskurklubi'),))
        r = parse_row(_row(Club='Tallinna Laskeklubi'), store, review_threshold=80)
        assert not r.needs_review


class TestIdempotence:
    """Re-parsing canonical output produces no corrections."""

    @pytest.mark.parametrize('distance,result', [('2x18m', '580'), ('90m+70m+50m+30m', '1200'), ('18m', '0')])
    def test_canonical_row(self, club_store, distance, result):
        first = parse_row(_row(**{'Shooting Exercise': distance, 'Result': result}), club_store)
        second = parse_row(first.to_row(), club_store)
        assert second.corrections == []
        assert second.to_row() == first.to_row()

    def test_after_normalization(self, club_store, estonian_rows):
        for record in parse_rows(estonian_rows, club_store):
            again = parse_row(record.to_row(), club_store)
            assert [c for c in again.corrections if c.field is not Field.RESULT] == []


class TestParseRows:
    """Tests for batch parsing."""

    def test_sample_file(self, club_store, estonian_rows):
        records = parse_rows(estonian_rows, club_store, 'sample_et.csv')
        assert len(records) == 15
        assert [r.id for r in records] == list(range(1, 16))
        assert all(r.source_file == 'sample_et.csv' for r in records)
        assert all(r.confidence == 100 for r in records)
        flagged = [r.athlete for r in records if r.needs_review]
        assert flagged == ['Toomas Tamm']

    def test_genders_from_class(self, club_store, estonian_rows):
        records = parse_rows(estonian_rows, club_store)
        assert records[0].gender == 'Women'
        assert records[1].gender == 'Men'

    def test_resequence(self, club_store):
        records = [parse_row(_row(), club_store, record_id=7), parse_row(_row(), club_store, record_id=7)]
        assert [r.id for r in resequence(records)] == [1, 2]
