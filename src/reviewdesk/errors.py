"""
Typed workflow errors.

Conflict, Unauthorized and NotFound are expected under normal concurrent use;
callers re-fetch and show the message. InvalidState and ValidationError point
at stale client state or a client bug and are not retried.
"""


class WorkflowError(Exception):
    code = "workflow_error"
    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message: str | None = None, document_id: str | None = None):
        self.message = message or self.default_message
        self.document_id = document_id
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.document_id:
            body["documentId"] = self.document_id
        return body


class Conflict(WorkflowError):
    code = "conflict"
    status_code = 409
    default_message = "This document was just claimed by someone else."


class Unauthorized(WorkflowError):
    code = "unauthorized"
    status_code = 403
    default_message = "You no longer hold this document."


class InvalidState(WorkflowError):
    code = "invalid_state"
    status_code = 400
    default_message = "This action is no longer available for this document. Please refresh."


class NotFound(WorkflowError):
    code = "not_found"
    status_code = 404
    default_message = "Document not found."


class ValidationError(WorkflowError):
    code = "validation_error"
    status_code = 422
    default_message = "The request payload is invalid."
