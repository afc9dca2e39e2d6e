from sqlalchemy import JSON, BigInteger, Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum_escrow.db.base import Base, UpdatedAtMixin
from quorum_escrow.services.escrow_state_machine import (
    EscrowStatus,
    distinct_approvers,
    quorum_reached,
    required_approvals,
)


class Escrow(UpdatedAtMixin, Base):
    __tablename__ = "escrows"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    creator: Mapped[str] = mapped_column(String(128), nullable=False)
    beneficiary: Mapped[str] = mapped_column(String(128), nullable=False)
    denom: Mapped[str] = mapped_column(String(128), nullable=False)
    # u128 quantities do not fit a BIGINT; kept as a decimal string
    amount: Mapped[str] = mapped_column(String(40), nullable=False)
    approver1: Mapped[str] = mapped_column(String(128), nullable=False)
    approver2: Mapped[str] = mapped_column(String(128), nullable=False)
    approver3: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    approvals: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    @property
    def approver_slots(self) -> tuple[str, ...]:
        slots = (self.approver1, self.approver2)
        if self.approver3 is not None:
            slots += (self.approver3,)
        return slots

    @property
    def status(self) -> EscrowStatus:
        return EscrowStatus.COMPLETED if self.is_completed else EscrowStatus.OPEN

    def is_approver(self, address: str) -> bool:
        return address in self.approver_slots

    def has_approved(self, address: str) -> bool:
        return address in self.approvals

    def required_approvals(self) -> int:
        return required_approvals(self.approver_slots)

    def total_approvers(self) -> int:
        return len(distinct_approvers(self.approver_slots))

    def can_be_released(self) -> bool:
        return not self.is_completed and quorum_reached(self.approvals, self.approver_slots)


class _AddressIndexRow:
    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    escrow_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("escrows.id"), primary_key=True, index=True
    )


class EscrowByCreator(_AddressIndexRow, Base):
    __tablename__ = "escrows_by_creator"


class EscrowByBeneficiary(_AddressIndexRow, Base):
    __tablename__ = "escrows_by_beneficiary"


class EscrowByApprover(_AddressIndexRow, Base):
    __tablename__ = "escrows_by_approver"


class ContractItem(UpdatedAtMixin, Base):
    """Singleton contract values (identifier counter, version marker), JSON-encoded."""

    __tablename__ = "contract_items"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
