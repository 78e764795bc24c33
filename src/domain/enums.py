"""Domain enumerations and state-transition rules."""

import enum


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


# State machine: maps current status -> set of valid next statuses
REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.ACCEPTED, RequestStatus.DECLINED},
    RequestStatus.ACCEPTED: set(),
    RequestStatus.DECLINED: set(),
}


class DecisionAction(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class NotificationType(str, enum.Enum):
    STATUS_UPDATE = "status_update"
    NEW_REQUEST = "new_request"
