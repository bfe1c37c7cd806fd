import pytest
from numpy.random import seed


@pytest.fixture(scope="session", autouse=True)
def random_seed():
    seed(1234)
    return
