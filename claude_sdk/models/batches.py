"""Message Batches API models."""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from claude_sdk.models.claude import MessagesAPIRequest, MessagesResponse
from claude_sdk.models.streaming import ErrorInfo


class BatchRequest(BaseModel):
    """One Messages request inside a batch, matched to its result by custom_id."""

    custom_id: str = Field(min_length=1, max_length=64)
    params: MessagesAPIRequest


class CreateBatchRequest(BaseModel):
    requests: List[BatchRequest] = Field(min_length=1)


class RequestCounts(BaseModel):
    model_config = ConfigDict(frozen=True)
    processing: int = 0
    succeeded: int = 0
    errored: int = 0
    canceled: int = 0
    expired: int = 0


ProcessingStatus = Literal["in_progress", "canceling", "ended"]


class MessageBatch(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    id: str
    type: Literal["message_batch"] = "message_batch"
    processing_status: ProcessingStatus
    request_counts: RequestCounts = Field(default_factory=RequestCounts)
    created_at: str
    expires_at: str
    ended_at: Optional[str] = None
    archived_at: Optional[str] = None
    cancel_initiated_at: Optional[str] = None
    results_url: Optional[str] = None

    @property
    def ended(self) -> bool:
        return self.processing_status == "ended"


class BatchesListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)
    data: List[MessageBatch]
    first_id: Optional[str] = None
    last_id: Optional[str] = None
    has_more: bool = False


# Result lines of the JSONL results file
class SucceededResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["succeeded"] = "succeeded"
    message: MessagesResponse


class ErroredResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["errored"] = "errored"
    error: ErrorInfo

    @field_validator("error", mode="before")
    @classmethod
    def unwrap_error_envelope(cls, v: Any) -> Any:
        # {"type": "error", "error": {"type": ..., "message": ...}}
        if isinstance(v, dict) and v.get("type") == "error" and isinstance(v.get("error"), dict):
            return v["error"]
        return v


class CanceledResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["canceled"] = "canceled"


class ExpiredResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["expired"] = "expired"


BatchResult = Annotated[
    Union[SucceededResult, ErroredResult, CanceledResult, ExpiredResult],
    Field(discriminator="type"),
]


class BatchResultLine(BaseModel):
    model_config = ConfigDict(frozen=True)
    custom_id: str
    result: BatchResult
