import pytest

import gosubtest


@pytest.fixture
def fs():
    """Empty in memory filesystem."""
    return gosubtest.memfs()


@pytest.fixture
def interp(fs):
    """Interpreter over the fs fixture, with gopath "/go"."""
    return gosubtest.make_interp(fs, gopath=["/go"])
