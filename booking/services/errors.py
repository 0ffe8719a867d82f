"""
errors.py
---------
Expected, user-facing scheduling outcomes.

Every rejection the scheduling core can produce is a SchedulingError
subclass with a stable `code`. Views never let these escape: the DRF
exception handler in booking/api_errors.py turns them into

    {"success": false, "error": {"code": ..., "message": ...}}

None of them are retried by the core; the caller decides whether to offer
another slot.
"""


class SchedulingError(Exception):
    code = "SCHEDULING_ERROR"
    status_code = 400
    default_message = "The request could not be scheduled."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class PastDate(SchedulingError):
    code = "PAST_DATE"
    default_message = "The requested date/time has already passed."


class SlotConflict(SchedulingError):
    code = "SLOT_CONFLICT"
    status_code = 409
    default_message = "That time is no longer available."


class AlreadyEnrolled(SchedulingError):
    code = "ALREADY_ENROLLED"
    status_code = 409
    default_message = "Client already has a booking for this service on that day."


class EnrollmentClosed(SchedulingError):
    code = "ENROLLMENT_CLOSED"
    default_message = "Enrollment is no longer available for this class."


class ClientNotEligible(SchedulingError):
    code = "CLIENT_NOT_ELIGIBLE"
    status_code = 403
    default_message = "Client is not eligible for classes."


class OutsideWorkingHours(SchedulingError):
    code = "OUTSIDE_WORKING_HOURS"
    default_message = "The requested time is outside working hours."


class InvalidSlotStart(OutsideWorkingHours):
    code = "INVALID_SLOT_START"
    default_message = "The requested time is not one of the offered slot start times."


class InvalidRecurrence(SchedulingError):
    code = "INVALID_RECURRENCE"
    default_message = "The recurrence rule is not valid."


class InvalidTransition(SchedulingError):
    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "The appointment cannot move to that status."


class CancellationCutoff(SchedulingError):
    code = "CANCELLATION_CUTOFF"
    default_message = "Cannot cancel this close to the appointment start."


class InvalidRequest(SchedulingError):
    code = "INVALID_REQUEST"


class NotFound(SchedulingError):
    status_code = 404


class StaffScheduleNotFound(NotFound):
    code = "STAFF_SCHEDULE_NOT_FOUND"
    default_message = "Staff availability not found."


class ServiceNotFound(NotFound):
    code = "SERVICE_NOT_FOUND"
    default_message = "Service not found."


class StaffNotFound(NotFound):
    code = "STAFF_NOT_FOUND"
    default_message = "Staff member not found."


class ClientNotFound(NotFound):
    code = "CLIENT_NOT_FOUND"
    default_message = "Client not found."


class TemplateNotFound(NotFound):
    code = "TEMPLATE_NOT_FOUND"
    default_message = "Slot template not found."
