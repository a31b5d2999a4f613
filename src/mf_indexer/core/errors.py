"""Exception types for fatal scan errors."""


class ScanError(Exception):
    """Base exception for errors that abort a scan before traversal."""

    pass


class ScanRootError(ScanError):
    """The scan root does not exist or is not a directory."""

    pass


class IgnoreRuleError(ScanError):
    """An ignore file could not be read, or one of its patterns was rejected.

    An incorrect rule set would silently change every downstream keep/skip
    decision, so this is never downgraded to a warning.
    """

    pass


class IncludePatternError(ScanError):
    """An include glob is malformed."""

    pass
