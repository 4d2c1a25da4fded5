"""Error taxonomy for parsing, resolution and run coordination.

None of these are fatal: each is caught at the boundary of the record,
clause, file or run it concerns.
"""


class TestSyncError(Exception):
    """Base class for recoverable test synchronization errors."""

    __test__ = False


class ParseSkip(TestSyncError):
    """A result file line matched a grammar but carried malformed fields."""


class ResolutionFailure(TestSyncError):
    """A clause head could not be resolved to a predicate indicator."""

    def __init__(self, path: str, line: int, reason: str):
        self.path = path
        self.line = line
        self.reason = reason
        super().__init__(f"{path}:{line}: {reason}")


class RunTimeout(TestSyncError):
    """A run's marker file did not appear within the timeout."""

    def __init__(self, marker: str, timeout: float):
        self.marker = marker
        self.timeout = timeout
        super().__init__(f"Timeout of {timeout}s exceeded waiting for {marker}")


class MissingResultsFile(TestSyncError):
    """The results file expected after a run does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Results file not found: {path}")


class InvalidReport(TestSyncError):
    """An xUnit report is not well-formed XML."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid xUnit report {path}: {reason}")
