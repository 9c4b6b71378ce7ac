"""
Conversation Schema
Mood Scoring Engine - Input data model

Pydantic schema for ingested conversations (messages, participants, context).
Conversations are read-only to the scoring core.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, List, Optional
from datetime import datetime, timezone


ParticipantRole = Literal[
    "author",
    "recipient",
    "observer",
    "supporter",
    "listener",
    "vulnerable_sharer",
    "emotional_leader",
]


class ConversationMessage(BaseModel):
    """Single message in a conversation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Message ID")
    author_id: str = Field(..., description="Participant ID of the author")
    content: str = Field(default="", description="Message text")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the message was sent"
    )


class Participant(BaseModel):
    """Conversation participant and role."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Participant ID")
    role: ParticipantRole = Field(default="author", description="Role in the conversation")
    name: Optional[str] = Field(default=None, description="Display name")
    emotional_expressions: List[str] = Field(
        default_factory=list,
        description="Free-text emotion tags used by the participant"
    )


class ConversationContext(BaseModel):
    """Optional conversation metadata."""

    model_config = ConfigDict(frozen=True)

    conversation_type: Optional[Literal["direct", "group", "public"]] = Field(
        default=None, description="Direct, group or public conversation"
    )
    platform: Optional[str] = Field(default=None, description="Source platform")
    relationship_type: Optional[str] = Field(
        default=None, description="Relationship between participants (friend, family, ...)"
    )


class ConversationData(BaseModel):
    """A complete conversation. Message order is chronological and meaningful."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Conversation ID")
    messages: List[ConversationMessage] = Field(default_factory=list)
    participants: List[Participant] = Field(default_factory=list)
    context: Optional[ConversationContext] = Field(default=None)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the conversation occurred"
    )

    @property
    def start_time(self) -> datetime:
        return self.messages[0].timestamp if self.messages else self.timestamp

    @property
    def end_time(self) -> datetime:
        return self.messages[-1].timestamp if self.messages else self.timestamp

    @property
    def full_text(self) -> str:
        """Lower-cased concatenation of all message contents."""
        return " ".join(m.content.lower() for m in self.messages)

    @property
    def relationship_type(self) -> str:
        if self.context and self.context.relationship_type:
            return self.context.relationship_type
        return "unknown"
