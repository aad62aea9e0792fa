class FrontDeskError(Exception):
    """Base class for every error raised by the booking core."""


class StoreError(FrontDeskError):
    """The persistent store failed to read or write."""


class ReservationError(FrontDeskError):
    pass


class RoomNotAvailable(ReservationError):
    def __init__(self, room_number):
        super().__init__(f"Room {room_number} is already occupied")
        self.room_number = str(room_number)


class InvalidDateRange(ReservationError):
    def __init__(self, check_in, check_out):
        super().__init__("Check-out must be the same as or after check-in")
        self.check_in = check_in
        self.check_out = check_out


class RoomProvisioningFailed(ReservationError):
    def __init__(self, room_number, reason=None):
        message = f"Could not provision room {room_number}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.room_number = str(room_number)


class BookingPersistFailed(ReservationError):
    def __init__(self, booking_id, room_number, rolled_back=True):
        super().__init__(f"Could not save booking {booking_id} for room {room_number}")
        self.booking_id = booking_id
        self.room_number = str(room_number)
        self.rolled_back = rolled_back


class BookingNotFound(FrontDeskError):
    def __init__(self, booking_id):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class CustomerNotFound(FrontDeskError):
    def __init__(self, customer_id):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id
