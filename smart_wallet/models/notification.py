"""User-facing notifications emitted by wallet operations."""

from enum import Enum

from pydantic import BaseModel, Field

from smart_wallet.models.ids import new_id


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """
    A message for the presentation layer.

    The core only produces these; showing and expiring them is up to
    whatever sink the caller plugs in.
    """

    id: str = Field(default_factory=new_id)
    title: str
    message: str
    level: NotificationLevel = NotificationLevel.SUCCESS
