class PoolError(Exception):
    """Base class for errors raised by weakpool."""


class ScalingAlgorithmError(PoolError):
    """A scaling algorithm produced a capacity the pool cannot use."""

    def __init__(self, algorithm: object, result: object):
        self.algorithm = algorithm
        self.result = result
        super().__init__(
            f"Scaling algorithm {algorithm!r} returned {result!r}; "
            "expected a non-negative integer"
        )
