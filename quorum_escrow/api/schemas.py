from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_serializer, field_validator

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1

EscrowId = Annotated[int, Field(ge=0, le=U64_MAX)]
PageLimit = Annotated[int, Field(ge=0, le=U32_MAX)]


def from_external_tag(value: Any) -> Any:
    """Accept ``{"create_escrow": {...}}`` as well as ``{"kind": "create_escrow", ...}``."""
    if isinstance(value, dict) and "kind" not in value and len(value) == 1:
        ((tag, body),) = value.items()
        if isinstance(body, dict):
            return {"kind": tag, **body}
    return value


# ---------------------------------------------------------------------------
# Funds & transfer instructions
# ---------------------------------------------------------------------------


class Coin(BaseModel):
    denom: str = Field(min_length=1)
    amount: int = Field(ge=0, le=U128_MAX)

    @field_serializer("amount")
    def _amount_as_string(self, v: int) -> str:
        return str(v)

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


class BankSend(BaseModel):
    """Instruction for the settlement layer to move funds out of custody."""

    kind: Literal["bank_send"] = "bank_send"
    to_address: str
    amount: list[Coin]


class Attribute(BaseModel):
    key: str
    value: str


class ContractResponse(BaseModel):
    """Acknowledgment of one entry-point invocation."""

    attributes: list[Attribute] = []
    messages: list[BankSend] = []

    def add_attribute(self, key: str, value: Any) -> "ContractResponse":
        self.attributes.append(Attribute(key=key, value=str(value)))
        return self

    def add_message(self, message: BankSend) -> "ContractResponse":
        self.messages.append(message)
        return self

    def attribute(self, key: str) -> str | None:
        for attr in self.attributes:
            if attr.key == key:
                return attr.value
        return None


# ---------------------------------------------------------------------------
# Invocation context
# ---------------------------------------------------------------------------


class MessageInfo(BaseModel):
    sender: str
    funds: list[Coin] = []


class Env(BaseModel):
    block_time: int = Field(ge=0, description="Block time, UNIX seconds")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class _TaggedMsg(BaseModel):
    kind: str

    def wire(self) -> dict:
        """Externally tagged form: ``{kind: {...fields}}``."""
        return {self.kind: self.model_dump(mode="json", exclude={"kind"}, exclude_none=True)}


class InstantiateMsg(BaseModel):
    pass


class MigrateMsg(BaseModel):
    pass


class CreateEscrow(_TaggedMsg):
    kind: Literal["create_escrow"] = "create_escrow"
    beneficiary: str = Field(description="Address that will receive the funds when released")
    approver1: str = Field(description="First approver address")
    approver2: str = Field(description="Second approver address")
    approver3: str | None = Field(default=None, description="Optional third approver address")
    description: str = Field(default="", description="Description of the escrow conditions")


class ApproveRelease(_TaggedMsg):
    kind: Literal["approve_release"] = "approve_release"
    escrow_id: EscrowId


class CancelEscrow(_TaggedMsg):
    kind: Literal["cancel_escrow"] = "cancel_escrow"
    escrow_id: EscrowId


ExecuteMsg = Annotated[
    Union[CreateEscrow, ApproveRelease, CancelEscrow],
    Field(discriminator="kind"),
]


class GetEscrow(_TaggedMsg):
    kind: Literal["get_escrow"] = "get_escrow"
    escrow_id: EscrowId


class GetEscrowsByAddress(_TaggedMsg):
    kind: Literal["get_escrows_by_address"] = "get_escrows_by_address"
    address: str
    start_after: EscrowId | None = None
    limit: PageLimit | None = None


class GetAllEscrows(_TaggedMsg):
    kind: Literal["get_all_escrows"] = "get_all_escrows"
    start_after: EscrowId | None = None
    limit: PageLimit | None = None


QueryMsg = Annotated[
    Union[GetEscrow, GetEscrowsByAddress, GetAllEscrows],
    Field(discriminator="kind"),
]

execute_msg_adapter: TypeAdapter[ExecuteMsg] = TypeAdapter(ExecuteMsg)
query_msg_adapter: TypeAdapter[QueryMsg] = TypeAdapter(QueryMsg)


def parse_execute_msg(raw: Any) -> CreateEscrow | ApproveRelease | CancelEscrow:
    return execute_msg_adapter.validate_python(from_external_tag(raw))


def parse_query_msg(raw: Any) -> GetEscrow | GetEscrowsByAddress | GetAllEscrows:
    return query_msg_adapter.validate_python(from_external_tag(raw))


# ---------------------------------------------------------------------------
# Query responses
# ---------------------------------------------------------------------------


class EscrowResponse(BaseModel):
    id: int
    creator: str
    beneficiary: str
    amount: Coin
    approver1: str
    approver2: str
    approver3: str | None
    description: str
    approvals: list[str]
    is_completed: bool
    created_at: int
    completed_at: int | None

    @classmethod
    def from_escrow(cls, escrow: Any) -> "EscrowResponse":
        return cls(
            id=escrow.id,
            creator=escrow.creator,
            beneficiary=escrow.beneficiary,
            amount=Coin(denom=escrow.denom, amount=int(escrow.amount)),
            approver1=escrow.approver1,
            approver2=escrow.approver2,
            approver3=escrow.approver3,
            description=escrow.description,
            approvals=list(escrow.approvals),
            is_completed=escrow.is_completed,
            created_at=escrow.created_at,
            completed_at=escrow.completed_at,
        )


class EscrowListResponse(BaseModel):
    escrows: list[EscrowResponse]


class ContractInfoResponse(BaseModel):
    contract: str
    version: str


class EscrowActionsResponse(BaseModel):
    escrow_id: int
    address: str
    status: Literal["open", "completed"]
    required_approvals: int
    total_approvers: int
    available_actions: list[str]


class ErrorResponse(BaseModel):
    error: str
    detail: str
    # Present only for the error kinds that carry them
    escrow_id: int | None = None
    address: str | None = None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Host dispatch requests
# ---------------------------------------------------------------------------


class InstantiateRequest(BaseModel):
    sender: str
    funds: list[Coin] = []
    block_time: int | None = Field(default=None, ge=0)
    msg: InstantiateMsg = InstantiateMsg()


class ExecuteRequest(BaseModel):
    sender: str
    funds: list[Coin] = []
    block_time: int | None = Field(default=None, ge=0)
    msg: ExecuteMsg

    @field_validator("msg", mode="before")
    @classmethod
    def _unwrap_tag(cls, v: Any) -> Any:
        return from_external_tag(v)


class MigrateRequest(BaseModel):
    block_time: int | None = Field(default=None, ge=0)
    msg: MigrateMsg = MigrateMsg()


class QueryRequest(BaseModel):
    msg: QueryMsg

    @field_validator("msg", mode="before")
    @classmethod
    def _unwrap_tag(cls, v: Any) -> Any:
        return from_external_tag(v)
