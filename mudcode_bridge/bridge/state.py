"""
Read-only view of the mudcode state document.

The state file is owned by the mudcode CLI; the bridge re-reads it on every
request and never writes it. Channel lookup for ``(project, agent, instance)``
runs three passes in order:

1. Exact instance: ``instances[instance_id]`` with a non-blank channel
2. Primary instance: the first routable instance of the agent type, ordered
   by effective instance id
3. Legacy: ``discordChannels[agent_type]``
"""

from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..log_config import get_logger
from ..types import clean_text

log = get_logger("state")


class ProjectInstance(BaseModel):
    """One agent instance running inside a project."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    instance_id: str | None = Field(default=None, alias="instanceId")
    agent_type: str | None = Field(default=None, alias="agentType")
    channel_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("channelId", "discordChannelId", "channel_id"),
    )
    event_hook: bool | None = Field(default=None, alias="eventHook")

    @field_validator("event_hook", mode="before")
    @classmethod
    def _only_bool_event_hook(cls, value: object) -> bool | None:
        # Anything but a JSON boolean leaves the hook setting unset.
        return value if isinstance(value, bool) else None

    def effective_id(self, key: str) -> str:
        """The record's ``instanceId`` if set, else its key in ``instances``."""
        return clean_text(self.instance_id) or key

    @property
    def routable(self) -> bool:
        return clean_text(self.agent_type) is not None and clean_text(self.channel_id) is not None


class ProjectState(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    project_path: str | None = Field(default=None, alias="projectPath")
    instances: dict[str, ProjectInstance] = Field(default_factory=dict)
    discord_channels: dict[str, str | None] = Field(default_factory=dict, alias="discordChannels")

    def exact_instance(self, instance_id: str | None) -> ProjectInstance | None:
        """Instance stored under ``instance_id`` when it has a channel.

        The record's agent type is not compared with the requested one.
        """
        if instance_id is None:
            return None
        instance = self.instances.get(instance_id)
        if instance is None or clean_text(instance.channel_id) is None:
            return None
        return instance

    def primary_instance(self, agent_type: str) -> ProjectInstance | None:
        """First routable instance of ``agent_type`` by effective instance id."""
        candidates = sorted(
            (
                (instance.effective_id(key), instance)
                for key, instance in self.instances.items()
                if instance.routable
            ),
            key=lambda item: item[0],
        )
        for _, instance in candidates:
            if clean_text(instance.agent_type) == agent_type:
                return instance
        return None

    def legacy_channel(self, agent_type: str) -> str | None:
        return clean_text(self.discord_channels.get(agent_type))


class BridgeState(BaseModel):
    """Root of the state document. Unknown top-level keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    projects: dict[str, ProjectState] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> "BridgeState":
        """Load the state file; a missing or malformed file yields empty state."""
        try:
            data = path.read_bytes()
        except OSError as e:
            log.debug("state.load_skipped", path=str(path), exc=e)
            return cls()

        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            log.warning("state.parse_error", path=str(path), error_count=e.error_count())
            return cls()

    def find_instance(
        self,
        project_name: str,
        agent_type: str,
        instance_id: str | None = None,
    ) -> ProjectInstance | None:
        """Instance record that routing would use, if routing hits one."""
        project = self.projects.get(project_name)
        if project is None:
            return None
        return project.exact_instance(instance_id) or project.primary_instance(agent_type)

    def find_channel_id(
        self,
        project_name: str,
        agent_type: str,
        instance_id: str | None = None,
    ) -> str | None:
        project = self.projects.get(project_name)
        if project is None:
            return None

        instance = project.exact_instance(instance_id) or project.primary_instance(agent_type)
        if instance is not None:
            return clean_text(instance.channel_id)

        return project.legacy_channel(agent_type)

    def project_path(self, project_name: str) -> Path | None:
        project = self.projects.get(project_name)
        if project is None:
            return None
        raw = clean_text(project.project_path)
        return Path(raw) if raw else None
