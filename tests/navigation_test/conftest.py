import pytest

from fakes import FakeAnnouncer, FakeClock, FakeRouter


@pytest.fixture
def router():
    return FakeRouter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def announcer():
    return FakeAnnouncer()
