from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import IdentityEntity, TaskEntity


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task. Blank text is accepted here and turned
    into a no-op by the service.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"text": "buy milk"}})

    text: Optional[str] = Field(default=None, description="Task content")


# PUBLIC_INTERFACE
class TaskToggle(BaseModel):
    """
    Schema for changing completion. When ``completed`` is omitted the
    current value is flipped.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"completed": True}})

    completed: Optional[bool] = Field(default=None, description="Target completion status")


# PUBLIC_INTERFACE
class DisplayNameUpdate(BaseModel):
    """Schema for setting the caller's display name."""

    model_config = ConfigDict(json_schema_extra={"example": {"displayName": "Alice"}})

    displayName: Optional[str] = Field(default=None, description="New display name")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.

    ``user_ip`` is the owner's identity; the name is kept for existing clients.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "user_ip": "203.0.113.5",
                "text": "buy milk",
                "completed": False,
                "last_updated": 1760870400000,
                "display_name": "Alice",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the task")
    user_ip: str = Field(..., description="Identity of the task owner")
    text: str = Field(..., description="Task content")
    completed: bool = Field(..., description="Completion status flag")
    last_updated: Optional[int] = Field(default=None, description="Last change, epoch milliseconds")
    display_name: Optional[str] = Field(default=None, description="Owner's display name, if set")

    @classmethod
    def from_entity(cls, task: TaskEntity) -> "TaskOut":
        return cls(
            id=task["id"],
            user_ip=task["owner_identity"] or "",
            text=task["text"] if task["text"] is not None else "",
            completed=task["completed"],
            last_updated=task["last_updated"],
            display_name=task["display_name"],
        )


class CreatedOut(BaseModel):
    """Id of the created task; null when the text was blank."""

    id: Optional[int] = None


class ChangesOut(BaseModel):
    """Rows affected by an owner-scoped mutation (0 or 1)."""

    changes: int


class SuccessOut(BaseModel):
    success: bool


# PUBLIC_INTERFACE
class ProfileOut(BaseModel):
    """The caller's identity and display name (identity when never set)."""

    ip: str
    display_name: str

    @classmethod
    def from_entity(cls, identity: IdentityEntity) -> "ProfileOut":
        return cls(ip=identity["identity"], display_name=identity["display_name"] or identity["identity"])
