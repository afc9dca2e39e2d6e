from quorum_escrow.models.escrow import (
    ContractItem,
    Escrow,
    EscrowByApprover,
    EscrowByBeneficiary,
    EscrowByCreator,
)

__all__ = [
    "ContractItem",
    "Escrow",
    "EscrowByApprover",
    "EscrowByBeneficiary",
    "EscrowByCreator",
]
