"""
exceptions.py
~~~~~~~~~~~~~

Error taxonomy for the neural network engine.

Shape errors and document errors are data problems and subclass ValueError;
storage errors are environment problems and subclass OSError. The two
families never overlap, so callers can tell a corrupt network file from a
missing one.
"""


class NeuralNetError(Exception):
    """Base class for every error raised by the package."""


class InputShapeError(NeuralNetError, ValueError):
    """A vector's length does not match the layer it is meant for."""

    def __init__(self, expected: int, actual: int, what: str = 'input'):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{what} vector has {actual} value(s), layer expects {expected}"
        )


class DocumentFormatError(NeuralNetError, ValueError):
    """A persisted network or training document is malformed or inconsistent."""


class NetworkIOError(NeuralNetError, OSError):
    """The storage behind a network document could not be read or written."""


class NetworkFileNotFoundError(NetworkIOError):
    """Attempt to load a neural network from a file that does not exist."""
