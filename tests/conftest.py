"""Shared pytest fixtures for diweave tests."""

import pytest

from diweave.providers import ProviderDependenciesExtractor
from diweave.registrations import DependencyConfiguration


@pytest.fixture()
def configuration() -> DependencyConfiguration:
    """Empty dependency configuration."""
    return DependencyConfiguration()


@pytest.fixture()
def dependencies_extractor() -> ProviderDependenciesExtractor:
    """ProviderDependenciesExtractor instance."""
    return ProviderDependenciesExtractor()
