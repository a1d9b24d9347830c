"""Test helper utilities for agent digest tests."""

from .fake_search import FixtureSearchGateway, load_search_responses

__all__ = ["FixtureSearchGateway", "load_search_responses"]
