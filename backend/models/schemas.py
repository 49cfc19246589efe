from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# --- Models ---
class ModelRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    name: Optional[str] = None


class PublicModel(BaseModel):
    id: str
    name: str
    max_length: int | float
    token_limit: int | float


class ModelListResponse(BaseModel):
    models: list[PublicModel]
    default_model_id: str


# --- Cost ---
class ChatMessage(BaseModel):
    role: str
    content: str = ""


class CostRequest(BaseModel):
    model: ModelRef
    messages: list[ChatMessage] = []
    prompt: str = ""
    assistant_message: str = ""


class CostResponse(BaseModel):
    input_tokens: int
    output_tokens: int
    total_cost_usd: float
    priced: bool
    pricing_model_id: Optional[str] = None
    warning: Optional[str] = None


# --- Usage logging ---
class UsageEventCreate(BaseModel):
    user_id: Optional[str] = None
    conversation_id: str = Field(..., min_length=1)
    assistant_message_index: int = Field(..., ge=0)
    model_id: Optional[str] = None
    pricing_model_id: Optional[str] = None
    priced: bool = False
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    total_cost_usd: float = Field(default=0.0, ge=0.0)


class ChatSpeaker(BaseModel):
    kind: str
    info: dict = {}


class ChatTurnIn(BaseModel):
    who: ChatSpeaker
    message: str = ""


class ChatLogCreate(BaseModel):
    id: str = Field(..., min_length=1)
    ts: Optional[int] = None
    question_answer: list[ChatTurnIn] = []


# --- Auth ---
class MeResponse(BaseModel):
    is_admin: bool


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str = "0.1.0"
    usage_event_count: int = 0
    chat_count: int = 0
