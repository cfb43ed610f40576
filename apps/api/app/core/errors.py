"""Workflow command errors.

Every error here is raised before anything is committed, so a failed command
leaves the ticket exactly as it was. ``main.py`` renders them as
``{"detail": ..., "code": ...}`` with the status code carried by the class.
"""


class WorkflowError(Exception):
    status_code = 400
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PolicyNotFound(WorkflowError):
    status_code = 404
    code = "POLICY_NOT_FOUND"

    def __init__(self, module: str, sub_category: str):
        super().__init__(f"No active category policy for {module} / {sub_category}")
        self.module = module
        self.sub_category = sub_category


class StaleLevel(WorkflowError):
    status_code = 409
    code = "STALE_LEVEL"

    def __init__(self, requested: str, current: str):
        super().__init__(
            f"Approval level {requested} is not open; ticket is currently at {current}. Refresh and try again."
        )
        self.requested = requested
        self.current = current


class AlreadyDecided(WorkflowError):
    status_code = 409
    code = "ALREADY_DECIDED"

    def __init__(self, level: str, decision: str):
        super().__init__(f"Ticket already decided at level {level} ({decision})")
        self.level = level
        self.decision = decision


class NotApprovable(WorkflowError):
    status_code = 409
    code = "NOT_APPROVABLE"

    def __init__(self, ticket_number: str | None):
        super().__init__(f"Ticket {ticket_number or '-'} cannot be routed before approval is completed")


class InvalidTransition(WorkflowError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, action: str, status: str, hint: str | None = None):
        message = f"Cannot {action} a ticket in status '{status}'"
        if hint:
            message = f"{message}: {hint}"
        super().__init__(message)
        self.action = action
        self.status = status


class TicketNotFound(WorkflowError):
    status_code = 404
    code = "TICKET_NOT_FOUND"

    def __init__(self, ticket_ref: int | str):
        super().__init__(f"Ticket {ticket_ref} not found")


class ValidationFailed(WorkflowError):
    status_code = 422
    code = "VALIDATION_FAILED"


class Forbidden(WorkflowError):
    status_code = 403
    code = "FORBIDDEN"
