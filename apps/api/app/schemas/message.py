from pydantic import BaseModel, Field
from datetime import datetime


class AttachmentRef(BaseModel):
    # 파일 저장은 외부 서비스 몫, 여기서는 참조만 보관
    name: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1, max_length=1000)
    content_type: str | None = None
    size: int | None = None


class MessageCreateIn(BaseModel):
    text: str = Field(min_length=1, max_length=10000)
    attachments: list[AttachmentRef] = Field(default_factory=list)


class MessageOut(BaseModel):
    id: int
    ticket_id: int
    sender_role: str
    sender_id: str | None = None
    sender_name: str
    message_type: str
    body: str
    attachments: list[dict] | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
