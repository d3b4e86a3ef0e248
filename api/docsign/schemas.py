from pydantic import BaseModel, Field
from typing import List, Literal, Optional

class FieldPlacement(BaseModel):
    id: str
    type: Literal["signature", "initials", "text", "date", "checkbox"]
    page: int = Field(default=1, ge=1)
    x: float
    y: float
    w: float
    h: float
    required: bool = True
    recipient_email: Optional[str] = None

class RecipientIn(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    name: str = Field(min_length=1, max_length=200)
    role: Literal["signer", "viewer"] = "signer"
    routing_order: Optional[int] = Field(default=None, ge=1, le=1000)

class DocumentSend(BaseModel):
    recipients: List[RecipientIn] = Field(min_length=1, max_length=200)
    subject: Optional[str] = Field(default=None, max_length=300)
    message: Optional[str] = Field(default=None, max_length=2000)
    signing_mode: Optional[Literal["parallel", "sequential"]] = None
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=365)

class DocumentIds(BaseModel):
    document_ids: List[int] = Field(min_length=1)

class SignSubmit(BaseModel):
    recipient_id: int
    values: dict = {}  # field_id -> value (text/date/checkbox/signature png as base64)

class RejectSubmit(BaseModel):
    recipient_id: int
    reason: Optional[str] = Field(default=None, max_length=2000)

class UserCreate(BaseModel):
    email: str
    name: str
