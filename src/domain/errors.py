"""
Dispatch error taxonomy.

Every error carries a stable ``code`` used by the API layer.  Capacity and
validation errors are raised inside the core and turned into typed
rejections by the decision engine; ``StorageUnavailable`` and
``DecisionTimeout`` are fatal for the current call and propagate.
"""

from __future__ import annotations


class DispatchError(Exception):
    code = "DISPATCH_ERROR"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    @property
    def details(self) -> dict:
        return {}


class RequestNotFound(DispatchError):
    code = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: int):
        super().__init__(f"Request {request_id} not found")
        self.request_id = request_id


class RequestNotPending(DispatchError):
    code = "REQUEST_NOT_PENDING"

    def __init__(self, request_id: int, status: str):
        super().__init__(f"Request {request_id} is already {status}")
        self.request_id = request_id
        self.status = status


class VehicleNotFound(DispatchError):
    code = "VEHICLE_NOT_FOUND"

    def __init__(self, vehicle: int | str):
        super().__init__(f"Vehicle {vehicle} not found in fleet")
        self.vehicle = vehicle


class MissingVehicle(DispatchError):
    code = "MISSING_VEHICLE"

    def __init__(self):
        super().__init__("A vehicle is required when accepting a request")


class InvalidGroupSize(DispatchError):
    code = "INVALID_GROUP_SIZE"

    def __init__(self, group_size: int):
        super().__init__(f"Group size must be positive, got {group_size}")
        self.group_size = group_size


class InsufficientSeats(DispatchError):
    code = "INSUFFICIENT_SEATS"

    def __init__(
        self,
        *,
        total_seats: int,
        occupied_seats: int,
        available_seats: int,
        requested_group_size: int,
    ):
        super().__init__(
            f"Not enough seats available. Vehicle has {available_seats} "
            f"seat(s) left, but group needs {requested_group_size}."
        )
        self.total_seats = total_seats
        self.occupied_seats = occupied_seats
        self.available_seats = available_seats
        self.requested_group_size = requested_group_size

    @property
    def details(self) -> dict:
        return {
            "total_seats": self.total_seats,
            "occupied_seats": self.occupied_seats,
            "available_seats": self.available_seats,
            "requested_group_size": self.requested_group_size,
        }


class Conflict(DispatchError):
    """The request changed underneath an in-flight transition."""

    code = "CONFLICT"
    retryable = True

    def __init__(self, request_id: int, expected: str, actual: str):
        super().__init__(
            f"Request {request_id} expected {expected} but is {actual}"
        )
        self.request_id = request_id
        self.expected = expected
        self.actual = actual


class StorageUnavailable(DispatchError):
    code = "STORAGE_UNAVAILABLE"


class DecisionTimeout(DispatchError):
    code = "DECISION_TIMEOUT"
    retryable = True
