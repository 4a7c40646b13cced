"""
Core Exceptions - Unified error hierarchy for crenv.

Configuration errors are raised before any resource exists. Everything
else may leave containers behind and goes through lifecycle cleanup.
"""


class CrenvError(Exception):
    """Base exception for all crenv errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(CrenvError):
    """Configuration error, detected before any side effect."""
    pass


class InvalidConfigError(ConfigurationError):
    """Invalid configuration value."""
    pass


class TopologyMismatchError(ConfigurationError):
    """Number of node sets does not match the topology mode."""

    def __init__(self, topology: str, expected: int, actual: int):
        super().__init__(
            f"expected {expected} nodeset(s) for '{topology}' topology, got {actual}",
            {"topology": topology, "expected": expected, "actual": actual}
        )
        self.topology = topology
        self.expected = expected
        self.actual = actual


class MissingCapabilityBinaryError(ConfigurationError):
    """Capability requested without a binary path or a shared image."""

    def __init__(self, capability: str, group: str | None = None):
        details = {"capability": capability}
        if group:
            details["group"] = group
        super().__init__(
            f"binary path for capability '{capability}' is not set and no plugins image was given",
            details
        )
        self.capability = capability


class MissingCredentialError(ConfigurationError):
    """Required credential not configured."""

    def __init__(self, name: str):
        super().__init__(
            f"Missing required credential: {name}",
            {"name": name}
        )
        self.name = name


class ProviderLoadError(ConfigurationError):
    """Provider bundle could not be imported or built."""
    pass


# =============================================================================
# Resolution Errors
# =============================================================================

class ResolutionError(CrenvError):
    """A name, chain or path could not be resolved."""
    pass


class ChainSelectorNotFoundError(ResolutionError):
    """Chain ID has no known selector."""

    def __init__(self, chain_id: int):
        super().__init__(
            f"failed to find chain selector for chain ID {chain_id}",
            {"chain_id": chain_id}
        )
        self.chain_id = chain_id


# =============================================================================
# Provisioning Errors
# =============================================================================

class ProvisioningError(CrenvError):
    """Provisioning failed after resources may have been created."""
    pass


class BlockchainStartError(ProvisioningError):
    """Blockchain could not be started or never became ready."""
    pass


class ControlPlaneStartError(ProvisioningError):
    """Job distributor failed to start."""
    pass


class NodeGroupStartError(ProvisioningError):
    """A node group failed to start."""

    def __init__(self, group: str, reason: str):
        super().__init__(
            f"failed to create node set named {group}: {reason}",
            {"group": group}
        )
        self.group = group
        self.reason = reason


class JobProposalError(ProvisioningError):
    """A job spec was rejected by the job distributor."""
    pass


class ProvisioningTimeoutError(ProvisioningError):
    """Startup exceeded its deadline."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"environment startup timed out after {timeout_seconds:.0f}s",
            {"timeout": timeout_seconds}
        )
        self.timeout_seconds = timeout_seconds


class ProvisioningInterrupted(ProvisioningError):
    """Startup was interrupted by a termination signal."""

    def __init__(self, signal_name: str):
        super().__init__(
            f"received signal: {signal_name}",
            {"signal": signal_name}
        )
        self.signal_name = signal_name


class UnexpectedProvisioningError(ProvisioningError):
    """Unrecoverable fault recovered at the top level."""

    def __init__(self, original_error: BaseException):
        super().__init__(
            f"unexpected failure while starting environment: {original_error}",
            {"original_error_type": type(original_error).__name__}
        )
        self.original_error = original_error


# =============================================================================
# Post-provisioning Errors
# =============================================================================

class CleanupError(CrenvError):
    """Best-effort resource removal failed."""

    def __init__(self, reason: str, failed: list[str] | None = None):
        super().__init__(
            f"failed to remove environment resources: {reason}",
            {"failed": failed or []}
        )
        self.reason = reason
        self.failed = failed or []


class SettingsWriteError(CrenvError):
    """Settings artifact could not be written."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"failed to write settings file {path}: {reason}",
            {"path": path}
        )
        self.path = path
        self.reason = reason


def first_line(error: BaseException | str) -> str:
    """Return the first line of an error message, used for telemetry."""
    text = str(error)
    return text.split("\n", 1)[0]
