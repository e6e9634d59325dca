"""Exception hierarchy for the RepuShield pipeline.

Item-level failures (one mention failing to store, score or fact-check) are
raised as these exceptions and caught by the owning stage, which records them
as strings on its AgentResult. Nothing here is meant to escape a stage
boundary except PipelineCancelledError, which the orchestrator handles.
"""


class RepuShieldError(Exception):
    """Base class for all pipeline errors."""


class MentionValidationError(RepuShieldError):
    """A mention is missing its natural key or owning configuration."""


class DuplicateMentionError(RepuShieldError):
    """The (platform, post_id) natural key already exists in the store."""

    def __init__(self, platform: str, post_id: str):
        super().__init__(f"Duplicate {platform} post: {post_id}")
        self.platform = platform
        self.post_id = post_id


class MentionNotFoundError(RepuShieldError):
    """No mention exists with the requested id."""


class ConfigurationNotFoundError(RepuShieldError):
    """No configuration exists with the requested id."""

    def __init__(self, configuration_id: str):
        super().__init__(f"Configuration {configuration_id} not found")
        self.configuration_id = configuration_id


class SourceClientError(RepuShieldError):
    """A platform source client failed at the transport or API level."""


class ClassificationError(RepuShieldError):
    """The classifier returned output that cannot be interpreted."""


class PipelineCancelledError(RepuShieldError):
    """An operator stopped the run before it completed."""
