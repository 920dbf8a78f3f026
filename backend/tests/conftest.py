"""
Shared fixtures: local JSON stores on tmp_path stand in for MongoDB, and a
scripted provider client stands in for Google Places.
"""
import pytest

from factories import FixedClock, ScriptedUpstream
from geoplaces.repos.local_repo import (
    LocalAnalyticsRepository,
    LocalGeoIndex,
    LocalPlacesRepository,
    LocalReviewsRepository,
    LocalUsersRepository,
)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def upstream():
    return ScriptedUpstream()


@pytest.fixture
def store(tmp_path):
    return LocalPlacesRepository(tmp_path)


@pytest.fixture
def geo_index(tmp_path):
    return LocalGeoIndex(tmp_path)


@pytest.fixture
def analytics_repo(tmp_path):
    return LocalAnalyticsRepository(tmp_path)


@pytest.fixture
def users_repo(tmp_path):
    return LocalUsersRepository(tmp_path)


@pytest.fixture
def reviews_repo(tmp_path):
    return LocalReviewsRepository(tmp_path)
