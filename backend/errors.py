"""Domain errors raised by the time tracking engine."""


class TimeTrackingError(Exception):
    """Base class for user-correctable time tracking failures."""

    code = "TIME_TRACKING_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidRangeError(TimeTrackingError):
    code = "TIME_ENTRY_INVALID_RANGE"

    def __init__(self, clock_in: int, clock_out: int):
        super().__init__("Clock out time must be after clock in time")
        self.clock_in = clock_in
        self.clock_out = clock_out


class OverlapError(TimeTrackingError):
    code = "TIME_ENTRY_OVERLAP"

    def __init__(self, user_id: str, date: str, conflicting_ids: list[int]):
        super().__init__(
            f"Time entry overlaps existing entries {conflicting_ids} for {user_id} on {date}"
        )
        self.user_id = user_id
        self.date = date
        self.conflicting_ids = conflicting_ids


class NoActiveSessionError(TimeTrackingError):
    code = "NO_ACTIVE_SESSION"

    def __init__(self, user_id: str):
        super().__init__(f"No active time session found for {user_id}")
        self.user_id = user_id


class EntryNotFoundError(TimeTrackingError):
    code = "TIME_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: int):
        super().__init__(f"Time entry {entry_id} not found")
        self.entry_id = entry_id
