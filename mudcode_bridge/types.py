"""Type definitions for hook payloads posted to the bridge."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_AGENT_TYPE = "opencode"


def clean_text(value: str | None) -> str | None:
    """Trim ``value``; blank strings become ``None``."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class HookPayload(BaseModel):
    """Fields shared by every hook payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    project_name: str | None = Field(default=None, alias="projectName")
    agent_type: str = Field(default=DEFAULT_AGENT_TYPE, alias="agentType")
    instance_id: str | None = Field(default=None, alias="instanceId")

    @field_validator("project_name", "instance_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return clean_text(value)

    @field_validator("agent_type", mode="before")
    @classmethod
    def _default_agent_type(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_AGENT_TYPE
        if isinstance(value, str):
            return value.strip()
        return value


class OpencodeEvent(HookPayload):
    """Session signal posted by the OpenCode plugin."""

    event_type: str | None = Field(default=None, alias="type")
    text: str | None = None
    message: str | None = None
    turn_text: str | None = Field(default=None, alias="turnText")

    @field_validator("event_type", "text", "message", "turn_text")
    @classmethod
    def _trim_text(cls, value: str | None) -> str | None:
        return clean_text(value)

    @property
    def event_text(self) -> str | None:
        """Visible text of the event: ``text`` wins over ``message``."""
        return self.text or self.message


class SendFilesEvent(HookPayload):
    """Explicit request to upload files to the project's channel."""

    files: list[str] = Field(default_factory=list)
