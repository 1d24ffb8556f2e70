"""Custom exceptions for skillaudit."""

from pathlib import Path


class SkillAuditError(Exception):
    """Base exception for all skillaudit errors."""

    category = "Error"


class ConfigError(SkillAuditError):
    """Raised when run configuration is invalid."""

    category = "Configuration error"


class UnsupportedProviderError(ConfigError):
    """Raised when the requested analysis provider does not exist."""

    def __init__(self, name: str, supported: tuple[str, ...]) -> None:
        self.name = name
        super().__init__(
            f"Unsupported provider '{name}'. Expected one of: {', '.join(supported)}"
        )


class MissingCredentialError(ConfigError):
    """Raised when a provider's API key environment variable is unset."""

    def __init__(self, env_var: str, provider: str) -> None:
        self.env_var = env_var
        self.provider = provider
        super().__init__(
            f"Missing API key environment variable '{env_var}'. "
            f"Set it before running with --provider {provider}."
        )


class InvalidProjectRootError(ConfigError):
    """Raised when the project root cannot be canonicalized."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Invalid project root {path}: {reason}")


class SkillsDirNotFoundError(ConfigError):
    """Raised when an explicitly requested skills directory does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Audit skills directory not found: {path}")


class NoSkillsFoundError(ConfigError):
    """Raised when a skills directory holds no skill definitions."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"No vulnerability skills found in {path}")


class InvalidEndpointError(ConfigError):
    """Raised when a provider endpoint is not an http(s) URL."""

    def __init__(self, endpoint: str, provider: str) -> None:
        self.endpoint = endpoint
        self.provider = provider
        super().__init__(
            f"Invalid endpoint '{endpoint}' for provider {provider}: expected an http(s) URL"
        )


class DiscoveryError(ConfigError):
    """Raised when the source tree cannot be walked."""


class MalformedSkillError(SkillAuditError):
    """Raised when a skill definition file fails validation."""

    category = "Skill validation error"

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{reason} in vulnerability skill file {path}")


class SandboxError(SkillAuditError):
    """Raised when a read request is denied or cannot be served."""

    category = "Sandbox denial"


class PathEscapeError(SandboxError):
    """Raised when a requested path resolves outside the project root."""


class ScopeDeniedError(SandboxError):
    """Raised when the read scope forbids the requested operation or path."""


class CommandNotAllowedError(SandboxError):
    """Raised when an operation kind is missing from the allow-list."""


class InvalidPatternError(SandboxError):
    """Raised when a grep pattern is not a valid regular expression."""


class UserDeniedError(SandboxError):
    """Raised when the operator refuses an interactive permission prompt."""


class ProviderError(SkillAuditError):
    """Raised when a backend request fails or returns an unusable payload."""

    category = "Provider error"


class PersistenceError(SkillAuditError):
    """Raised when the run state or report cannot be read or written."""

    category = "Persistence error"

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"{reason}: {path}")
