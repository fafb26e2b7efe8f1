"""String enums shared by the ORM layer, services and API models."""

from enum import StrEnum


class ProviderCategory(StrEnum):
    GOOGLE_WORKSPACE = "google_workspace"
    MICROSOFT_ENTRA_ID = "microsoft_entra_id"
    AWS_CONFIG = "aws_config"


class ConnectionStatus(StrEnum):
    PENDING_SETUP = "pending_setup"
    ACTIVE = "active"
    ERROR = "error"
    DISABLED = "disabled"


class SyncFrequency(StrEnum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class JobType(StrEnum):
    FULL_SYNC = "full_sync"
    INCREMENTAL_SYNC = "incremental_sync"


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"
    CANCELLED = "cancelled"


# Statuses a poller may claim once scheduled_at has passed
CLAIMABLE_JOB_STATUSES = (JobStatus.PENDING, JobStatus.RETRYING)

# Statuses that still occupy a connection for a given job type
ACTIVE_JOB_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING, JobStatus.RETRYING)


class SyncType(StrEnum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class EvidenceType(StrEnum):
    DOCUMENT = "document"
    AUTOMATED = "automated"


class EvidenceStatus(StrEnum):
    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class EvidenceAutomationStatus(StrEnum):
    PENDING = "pending"
    GENERATED = "generated"
    APPROVED = "approved"
    REJECTED = "rejected"


class ValidationOperator(StrEnum):
    EQUALS = "equals"
    CONTAINS = "contains"
    EXISTS = "exists"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class Transformation(StrEnum):
    DIRECT = "direct"
    FORMAT_DATE = "format_date"
    FORMAT_NUMBER = "format_number"
    EXTRACT_TEXT = "extract_text"


class ControlStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    IMPLEMENTED = "implemented"
    NOT_APPLICABLE = "not_applicable"


class RiskLikelihood(StrEnum):
    VERY_UNLIKELY = "very_unlikely"
    UNLIKELY = "unlikely"
    POSSIBLE = "possible"
    LIKELY = "likely"
    VERY_LIKELY = "very_likely"
    CERTAIN = "certain"


class RiskImpact(StrEnum):
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"
    CRITICAL = "critical"


class RiskSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"
    CRITICAL = "critical"


class RiskCategory(StrEnum):
    STRATEGIC = "strategic"
    OPERATIONAL = "operational"
    FINANCIAL = "financial"
    COMPLIANCE = "compliance"
    SECURITY = "security"
    TECHNOLOGY = "technology"
    SUPPLY_CHAIN = "supply_chain"
    REPUTATION = "reputation"
    REGULATORY = "regulatory"
    CUSTOM = "custom"


class RiskStatus(StrEnum):
    IDENTIFIED = "identified"
    ASSESSED = "assessed"
    TREATING = "treating"
    MONITORING = "monitoring"
    CLOSED = "closed"


class TreatmentStrategy(StrEnum):
    MITIGATE = "mitigate"
    TRANSFER = "transfer"
    AVOID = "avoid"
    ACCEPT = "accept"


class TreatmentStatus(StrEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
