"""Shared pytest fixtures for the spanrender test suite."""

from __future__ import annotations

import pytest

from spanrender.files import SimpleFiles
from tests.helpers import FIZZBUZZ


@pytest.fixture
def files():
    return SimpleFiles()


@pytest.fixture
def fizzbuzz(files):
    """A file table holding FizzBuzz.fun, and that file's id."""
    file_id = files.add("FizzBuzz.fun", FIZZBUZZ)
    return files, file_id
