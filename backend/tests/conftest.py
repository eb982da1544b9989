import pytest

from models.realtime import EventKind
from tests.fakes import FakeClock, FakeSource


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storm_source():
    return FakeSource(EventKind.STORM)


@pytest.fixture
def intel_source():
    return FakeSource(EventKind.INTEL)


@pytest.fixture
def customer_source():
    return FakeSource(EventKind.CUSTOMER)
