"""
Transportation Problem Solver - Exceptions
"""


class TransportError(Exception):
    """Base class for every error raised by the solver"""


class ConfigurationError(TransportError, ValueError):
    """The model handed to the solver is malformed or unbalanced"""


class ConsistencyError(TransportError, RuntimeError):
    """
    The basic-cell set no longer forms a spanning tree.

    Never expected for a valid model; raised instead of looping forever
    or returning a wrong optimum.
    """


class IterationLimitError(TransportError):
    """The MODI loop ran out of its pivot budget"""

    def __init__(self, message, iterations=None):
        super().__init__(message)
        self.iterations = iterations
