"""Error vocabulary for escrow invocations.

Every error aborts the invocation that raised it; the surrounding unit of
work rolls back so no partial writes survive. ``code`` is the stable,
machine-readable name used on the wire; ``status_code`` is the HTTP status the
API layer answers with.
"""


class ContractError(Exception):
    """Base class for all errors raised by the escrow contract."""

    code: str = "contract_error"
    status_code: int = 400
    default_message: str = "Contract error"

    # Extra attributes carried on the wire next to code and detail
    context_fields: tuple[str, ...] = ()

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def context(self) -> dict:
        return {name: getattr(self, name, None) for name in self.context_fields}


class StorageError(ContractError):
    """Failure surfaced from the persistence substrate."""

    code = "storage_error"
    status_code = 500
    default_message = "Storage error"


class Unauthorized(ContractError):
    code = "unauthorized"
    status_code = 403
    default_message = "Unauthorized"


class EscrowNotFound(ContractError):
    code = "escrow_not_found"
    status_code = 404
    default_message = "Escrow not found"
    context_fields = ("escrow_id",)

    def __init__(self, escrow_id: int | None = None):
        self.escrow_id = escrow_id
        msg = self.default_message
        if escrow_id is not None:
            msg += f": {escrow_id}"
        super().__init__(msg)


class EscrowCompleted(ContractError):
    code = "escrow_completed"
    status_code = 409
    default_message = "Escrow already completed"


class InsufficientFunds(ContractError):
    code = "insufficient_funds"
    status_code = 400
    default_message = "Insufficient funds sent"


class InvalidAddress(ContractError):
    code = "invalid_address"
    status_code = 400
    default_message = "Invalid address"
    context_fields = ("address", "reason")

    def __init__(self, address: str, reason: str | None = None):
        self.address = address
        self.reason = reason
        msg = f"{self.default_message}: {address!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class InvalidBeneficiary(InvalidAddress):
    code = "invalid_beneficiary"
    default_message = "Invalid beneficiary address"


class InvalidApprover(InvalidAddress):
    code = "invalid_approver"
    default_message = "Invalid approver address"


class AlreadyApproved(ContractError):
    code = "already_approved"
    status_code = 409
    default_message = "Approver already approved"


class CannotSelfApprove(ContractError):
    code = "cannot_self_approve"
    status_code = 403
    default_message = "Cannot approve your own escrow as the creator"


ERRORS_BY_CODE: dict[str, type[ContractError]] = {
    cls.code: cls
    for cls in (
        ContractError,
        StorageError,
        Unauthorized,
        EscrowNotFound,
        EscrowCompleted,
        InsufficientFunds,
        InvalidAddress,
        InvalidBeneficiary,
        InvalidApprover,
        AlreadyApproved,
        CannotSelfApprove,
    )
}


def error_from_wire(code: str, message: str, context: dict | None = None) -> ContractError:
    """Rebuild a contract error from its wire code, keeping the server message and context."""
    err_cls = ERRORS_BY_CODE.get(code, ContractError)
    err = err_cls.__new__(err_cls)
    ContractError.__init__(err, message)
    context = context or {}
    for name in err_cls.context_fields:
        setattr(err, name, context.get(name))
    return err
