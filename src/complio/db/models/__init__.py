"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from complio.db.models.org import OrganizationRow
from complio.db.models.provider import IntegrationProviderRow
from complio.db.models.connection import IntegrationConnectionRow
from complio.db.models.job import SyncJobRow
from complio.db.models.integration_log import IntegrationLogRow
from complio.db.models.control import ControlRow
from complio.db.models.evidence import AutomatedEvidenceRow, EvidenceControlRow, EvidenceRow
from complio.db.models.risk import RiskRow, RiskTreatmentRow

__all__ = [
    "OrganizationRow",
    "IntegrationProviderRow",
    "IntegrationConnectionRow",
    "SyncJobRow",
    "IntegrationLogRow",
    "ControlRow",
    "EvidenceRow",
    "EvidenceControlRow",
    "AutomatedEvidenceRow",
    "RiskRow",
    "RiskTreatmentRow",
]
