"""Data models for provisioning runs."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..utils.secrets import MIN_SECRET_LENGTH, generate_secret, is_safe_secret
from ..utils.validation import (
    LOCALHOST, validate_domain, validate_email, validate_identifier
)


class ResourceSnapshot(BaseModel):
    """Host capacity captured once per run."""

    model_config = ConfigDict(frozen=True)

    cpu_cores: int = Field(ge=1)
    total_memory_mb: int = Field(ge=0)
    available_memory_mb: int = Field(ge=0)
    available_disk_gb: int = Field(ge=0)
    total_disk_gb: int = Field(default=0, ge=0)
    cpu_model: Optional[str] = None
    load_average: Optional[str] = None
    hostname: Optional[str] = None


class WarningCode(str, Enum):
    """Advisory probe warnings."""
    LOW_DISK = "low_disk"
    SINGLE_CORE = "single_core"


class ProbeWarning(BaseModel):
    """Non-fatal probe finding surfaced to the operator."""

    model_config = ConfigDict(frozen=True)

    code: WarningCode
    message: str
    requires_confirmation: bool = False


class PerformanceTier(str, Enum):
    """Closed set of performance tiers, lowest first."""
    MINIMAL = "Minimal"
    BASIC = "Basic"
    STANDARD = "Standard"
    ENHANCED = "Enhanced"
    HIGH_PERFORMANCE = "High-Performance"

    @property
    def rank(self) -> int:
        """Ordinal position of the tier."""
        return list(PerformanceTier).index(self)


class TierProfile(BaseModel):
    """Capacity parameters for a tier.

    The static table leaves the host-derived fields unset; the tier
    selector fills them in for the probed host.
    """

    model_config = ConfigDict(frozen=True)

    db_max_connections: int
    worker_connections: int
    worker_max_children: int
    worker_start_count: int
    worker_min_idle: int
    worker_max_idle: int
    cache_memory_mb: int
    opcache_memory_mb: int
    max_upload_size_bytes: int
    buffer_pool_ceiling_mb: Optional[int] = None
    runtime_memory_ceiling_mb: Optional[int] = None

    # Host-derived
    worker_process_count: Optional[int] = None
    buffer_pool_mb: Optional[int] = None
    runtime_memory_mb: Optional[int] = None

    @model_validator(mode="after")
    def check_worker_bounds(self):
        """Validate process manager bounds are consistent."""
        if not (self.worker_min_idle <= self.worker_start_count <= self.worker_max_idle):
            raise ValueError("worker_start_count must lie between worker_min_idle and worker_max_idle")
        if self.worker_max_idle > self.worker_max_children:
            raise ValueError("worker_max_idle cannot exceed worker_max_children")
        return self

    @property
    def is_resolved(self) -> bool:
        """Whether host-derived values have been filled in."""
        return None not in (self.worker_process_count, self.buffer_pool_mb, self.runtime_memory_mb)


def _validated_secret(value: SecretStr) -> SecretStr:
    if not is_safe_secret(value.get_secret_value()):
        raise ValueError(
            f"Secrets must be at least {MIN_SECRET_LENGTH} alphanumeric characters"
        )
    return value


class ProvisioningIdentity(BaseModel):
    """Operator supplied or generated identity values."""

    model_config = ConfigDict(frozen=True)

    domain_name: str = LOCALHOST
    admin_email: str = ""
    db_user: str = "app_user"
    db_name: str = "app_database"
    db_root_secret: SecretStr = Field(default_factory=lambda: SecretStr(generate_secret()))
    db_app_secret: SecretStr = Field(default_factory=lambda: SecretStr(generate_secret()))
    app_secret: SecretStr = Field(default_factory=lambda: SecretStr(generate_secret(48)))

    @field_validator("domain_name", mode="before")
    @classmethod
    def validate_domain_name(cls, v):
        """Default to localhost and normalize case."""
        if v is None or not str(v).strip():
            return LOCALHOST
        v = str(v).strip().lower()
        is_valid, error = validate_domain(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator("db_user")
    @classmethod
    def validate_db_user(cls, v):
        is_valid, error = validate_identifier(v, max_length=32)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator("db_name")
    @classmethod
    def validate_db_name(cls, v):
        is_valid, error = validate_identifier(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator("db_root_secret", "db_app_secret", "app_secret")
    @classmethod
    def validate_secret(cls, v):
        return _validated_secret(v)

    @model_validator(mode="before")
    @classmethod
    def derive_admin_email(cls, data):
        """Derive admin@<domain> when no email was given."""
        if isinstance(data, dict) and not str(data.get("admin_email") or "").strip():
            domain = str(data.get("domain_name") or "").strip().lower() or LOCALHOST
            # An invalid domain reports its own error; do not repeat it for the email
            if not validate_domain(domain)[0]:
                domain = LOCALHOST
            data = {**data, "admin_email": f"admin@{domain}"}
        return data

    @field_validator("admin_email")
    @classmethod
    def validate_admin_email(cls, v):
        v = v.strip().lower()
        is_valid, error = validate_email(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @property
    def is_localhost(self) -> bool:
        """Whether DNS and certificate steps are bypassed."""
        return self.domain_name == LOCALHOST


class ConfigArtifact(BaseModel):
    """A generated configuration file."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    mode: int = 0o644

    @field_validator("path")
    @classmethod
    def validate_relative_path(cls, v):
        if not v or v.startswith("/") or ".." in v.split("/"):
            raise ValueError(f"Artifact path must be relative to the target directory: {v}")
        return v


class ProvisioningState(str, Enum):
    """Sequencer states."""
    INIT = "init"
    RESOURCES_PROBED = "resources_probed"
    IDENTITY_COLLECTED = "identity_collected"
    TIER_SELECTED = "tier_selected"
    DIRECTORIES_READY = "directories_ready"
    CONFIG_EMITTED = "config_emitted"
    SERVICES_STARTED = "services_started"
    CERTIFICATE_REQUESTED = "certificate_requested"
    READY = "ready"
    DECLINED = "declined"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProvisioningState.READY, ProvisioningState.DECLINED, ProvisioningState.FAILED)


def build_identity(**values) -> ProvisioningIdentity:
    """Build a ProvisioningIdentity, reporting bad input as ValidationError.

    ``None`` values fall back to the model defaults.
    """
    try:
        return ProvisioningIdentity(**{k: v for k, v in values.items() if v is not None})
    except PydanticValidationError as e:
        messages = [err["msg"].removeprefix("Value error, ") for err in e.errors()]
        raise ValidationError("; ".join(messages)) from e


def retarget_identity(
    identity: ProvisioningIdentity,
    domain: Optional[str] = None,
    email: Optional[str] = None
) -> ProvisioningIdentity:
    """Rebuild an identity for another domain, keeping its credentials.

    The stored email survives unless the domain actually changes, in which
    case a missing ``email`` derives ``admin@<domain>`` again.

    Raises:
        ValidationError: Malformed domain or email
    """
    changed = domain is not None and domain.strip().lower() != identity.domain_name
    if not changed and email is None:
        return identity

    return build_identity(
        domain_name=domain if changed else identity.domain_name,
        admin_email=email or (None if changed else identity.admin_email),
        db_user=identity.db_user,
        db_name=identity.db_name,
        db_root_secret=identity.db_root_secret,
        db_app_secret=identity.db_app_secret,
        app_secret=identity.app_secret,
    )
