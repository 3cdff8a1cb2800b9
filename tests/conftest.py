"""Shared fixtures for ctxhooks tests."""

from __future__ import annotations

import itertools

import pytest

from ctxhooks.engine import Engine, reset_engine


@pytest.fixture(autouse=True)
def default_engine() -> Engine:
    """Give every test a fresh default engine."""
    return reset_engine()


@pytest.fixture
def engine() -> Engine:
    """An isolated engine, independent of the default one."""
    return Engine()


@pytest.fixture
def incr():
    """A hook returning 1, 2, 3, ... on successive runs."""
    counter = itertools.count(1)

    def incr(context):
        return next(counter)

    return incr
