"""Errors raised when a reconciliation or clipping invariant is violated."""


class LivestockMapsError(Exception):
    """Base class for pipeline invariant violations."""


class DuplicateKeyError(LivestockMapsError):
    """More than one observation for the same (region, period) pair."""

    def __init__(self, keys):
        self.keys = list(keys)
        preview = self.keys[:10]
        more = f" (+{len(self.keys) - 10} more)" if len(self.keys) > 10 else ""
        super().__init__(f"Duplicate (region, period) keys: {preview}{more}")


class MissingFieldError(LivestockMapsError):
    """A region has no value for a period or field that must be defined."""

    def __init__(self, missing, field=None):
        self.missing = list(missing)
        self.field = field
        preview = self.missing[:10]
        more = f" (+{len(self.missing) - 10} more)" if len(self.missing) > 10 else ""
        where = f" for '{field}'" if field else ""
        super().__init__(f"Missing values{where}: {preview}{more}")


class InvalidBoundsError(LivestockMapsError):
    """Clip bounds where lower > upper."""

    def __init__(self, lower, upper):
        self.lower = lower
        self.upper = upper
        super().__init__(f"Invalid clip bounds: lower ({lower}) > upper ({upper})")
