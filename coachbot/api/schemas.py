from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    sender: str = Field(alias="from")
    body: str = ""

    model_config = {"populate_by_name": True}


class WebhookAck(BaseModel):
    status: Literal["ok", "error"] = "ok"
    # DispatchResult.status ("handled", "reprompted", "unknown_sender", ...) or a failure tag
    result: Optional[str] = None


class AddressRequest(BaseModel):
    address: str = Field(min_length=1)


class TestMessageRequest(BaseModel):
    address: str = Field(min_length=1)
    message: str = Field(min_length=1)


class DispatchResponse(BaseModel):
    status: str
    address: str
    flow: Optional[str] = None
    fromState: Optional[str] = None
    toState: Optional[str] = None
    messagesSent: int = 0


class SweepSummary(BaseModel):
    sweep: str
    status: str
    scanned: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0


class RecordList(BaseModel):
    count: int
    records: List[Dict[str, Any]] = Field(default_factory=list)


class SimulatedReplyRequest(BaseModel):
    address: str = Field(min_length=1)
    body: str = ""
