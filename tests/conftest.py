"""Shared test fixtures."""

from pathlib import Path

import pytest

from archery.clubs import ClubStore, MemoryClubStorage
from archery.reader import read_rows


DATA_DIR = Path(__file__).resolve().parent / 'data'


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the test data directory."""
    return DATA_DIR


@pytest.fixture
def club_store() -> ClubStore:
    """Fresh club vocabulary with built-ins only."""
    return ClubStore(MemoryClubStorage())


@pytest.fixture(scope='session')
def estonian_rows():
    """Raw rows from sample_et.csv."""
    return read_rows(DATA_DIR / 'sample_et.csv')


@pytest.fixture(scope='session')
def english_rows():
    """Raw rows from sample_en.csv."""
    return read_rows(DATA_DIR / 'sample_en.csv')
