class AvailabilityError(Exception):
    """Base class for booking availability failures"""

    pass


class BookingRuleError(AvailabilityError):
    """Requested booking violates a seating type rule (duration, quantity, window)"""

    pass


class InsufficientAvailabilityError(AvailabilityError):
    """Fewer free seats than requested"""

    def __init__(self, available_count: int, requested: int):
        self.available_count = available_count
        self.requested = requested
        super().__init__(
            f"Only {available_count} seat(s) available, {requested} requested"
        )
