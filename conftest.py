import pytest
from django.core.cache import cache


@pytest.fixture
def tour_api_key(settings):
    settings.TOUR_API_KEY = 'server-key'
    settings.TOUR_API_BASE_URL = 'https://apis.data.go.kr/B551011/KorService2'
    return settings.TOUR_API_KEY


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()
