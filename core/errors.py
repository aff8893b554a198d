class AgentDeskError(Exception):
    """Base class for errors raised by the engine."""


class ConfigurationError(AgentDeskError):
    """Raised while building engines from profiles; fatal at startup."""


class InvalidInputError(AgentDeskError):
    """Client-side input problem, reported back with its message."""

    def __init__(self, message: str = "Message is required"):
        super().__init__(message)
        self.message = message


class UnknownAgentError(AgentDeskError):
    def __init__(self, name: str):
        super().__init__(f"Unknown agent: {name}")
        self.name = name
