"""Typed workflow errors.

Every failed precondition surfaces as one of four exception types so callers
can catch by type and render by ``code``:

    WorkflowError
    +-- AuthorizationError   actor lacks the role/relationship for the operation
    +-- StateError           proposal is not in the status the operation needs
    +-- NotFoundError        no proposal, user or proposal type for the given id
    +-- ValidationError      missing or unusable input (reason, roster, title)

Each instance carries the operation name, the proposal id (when there is one)
and the expected/actual values that failed the check.
"""

from typing import Any


class WorkflowError(Exception):
    code: str = "WORKFLOW_ERROR"
    precondition: str = "workflow"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        proposal_id: str | None = None,
        expected: Any = None,
        actual: Any = None,
        code: str | None = None,
    ):
        self.message = message
        self.operation = operation
        self.proposal_id = proposal_id
        self.expected = expected
        self.actual = actual
        if code is not None:
            self.code = code
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        ctx: dict[str, Any] = {"precondition": self.precondition}
        if self.operation is not None:
            ctx["operation"] = self.operation
        if self.proposal_id is not None:
            ctx["proposal_id"] = self.proposal_id
        if self.expected is not None:
            ctx["expected"] = _plain(self.expected)
        if self.actual is not None:
            ctx["actual"] = _plain(self.actual)
        return ctx


class AuthorizationError(WorkflowError):
    code = "NOT_AUTHORIZED"
    precondition = "role"


class StateError(WorkflowError):
    code = "INVALID_STATE"
    precondition = "state"


class NotFoundError(WorkflowError):
    code = "NOT_FOUND"
    precondition = "lookup"


class ValidationError(WorkflowError):
    code = "VALIDATION_FAILED"
    precondition = "input"


def _plain(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return sorted(_plain(item) for item in value)
    return getattr(value, "value", value)
