"""
API request/response models.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    wa_id: str
    name: str | None = None
    custom_name: str | None = None
    display_name: str
    project_id: int | None = None
    pending_project_selection: bool = False


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    contact_id: str
    direction: str
    type: str
    timestamp: int  # epoch milliseconds
    status: str
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    failed_at: datetime | None = None
    reply_to_id: str | None = None
    text_body: str | None = None
    caption: str | None = None
    media_mime_type: str | None = None
    media_filename: str | None = None
    media_local_path: str | None = None
    is_voice: bool | None = None
    is_animated: bool | None = None
    latitude: float | None = None
    longitude: float | None = None
    reaction_emoji: str | None = None
    template_header: str | None = None
    template_footer: str | None = None


class ConversationOut(BaseModel):
    id: str
    contact: ContactOut
    last_message_at: datetime | None = None
    unread_count: int
    last_message: MessageOut | None = None
    is_within_24_hours: bool
    last_relevant_message_at: datetime | None = None


class SendMessageRequest(BaseModel):
    text: str = Field(min_length=1)
    reply_to_id: str | None = None


class SendMediaRequest(BaseModel):
    media_type: str = Field(pattern="^(image|video|audio|document)$")
    link: str
    caption: str | None = None
    filename: str | None = None


class CustomNameRequest(BaseModel):
    custom_name: str | None = None


class InviteRequest(BaseModel):
    to: str
    name: str
    platform: str
    platform_url: str
    login: str
    password: str


class PasswordResetRequest(BaseModel):
    to: str
    name: str
    platform_name: str
    password_reset_url: str
