import io

import pytest

from splitexport import errors


class Sink(io.BytesIO):
    """Output stream that stays readable after the registry closes it."""

    was_closed = False

    def close(self):
        self.was_closed = True

    def text(self):
        return self.getvalue().decode("utf-8")


class Sinks(dict):
    def __call__(self, name):
        sink = self[name] = Sink()
        return sink


@pytest.fixture(autouse=True)
def clean_error_count():
    errors.reset()
    yield
    errors.reset()


@pytest.fixture
def sinks():
    return Sinks()


@pytest.fixture
def sink():
    return Sink()
