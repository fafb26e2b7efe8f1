"""Evidence automation engine: turns sync payloads into reviewable evidence."""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from complio.db.models.connection import IntegrationConnectionRow
from complio.db.models.evidence import AutomatedEvidenceRow
from complio.errors.exceptions import ConflictError, NotFoundError
from complio.models.enums import (
    EvidenceAutomationStatus,
    EvidenceStatus,
    EvidenceType,
    Transformation,
    ValidationOperator,
)
from complio.repositories.control_repo import ControlRepository
from complio.repositories.evidence_repo import AutomatedEvidenceRepository, EvidenceRepository
from complio.repositories.provider_repo import IntegrationProviderRepository
from complio.services.evidence.rules import (
    EvidenceGenerationRule,
    TransformationRule,
    ValidationRule,
    get_generation_rules,
)
from complio.services.id_generator import generate_id
from complio.services.timeutil import utcnow

logger = logging.getLogger(__name__)

EVIDENCE_SOURCE = "automated_integration"
MAX_TEXT_LENGTH = 1000
MISSING_FIELD_PENALTY = 20
# Rejection reasons kept on the automated evidence row
MAX_RECORDED_ERRORS = 50


def get_nested_value(record: dict, path: str):
    """Resolve a dotted path; returns None when any segment is missing."""
    current = record
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _is_missing(value) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_record(record: dict, rules: list[ValidationRule]) -> list[str]:
    """Check a record against validation rules. Returns error messages."""
    errors: list[str] = []
    for rule in rules:
        value = get_nested_value(record, rule.field)
        if _is_missing(value):
            if rule.required:
                errors.append(f"Required field {rule.field} is missing")
            continue

        if rule.operator == ValidationOperator.EQUALS:
            if value != rule.value:
                errors.append(f"Field {rule.field} does not equal expected value")
        elif rule.operator == ValidationOperator.CONTAINS:
            if not isinstance(value, (str, list, tuple, dict)) or rule.value not in value:
                errors.append(f"Field {rule.field} does not contain expected value")
        elif rule.operator == ValidationOperator.GREATER_THAN:
            # Directory APIs send int64 counts as JSON strings
            actual, expected = _format_number(value), _format_number(rule.value)
            if actual is None or expected is None or not actual > expected:
                errors.append(f"Field {rule.field} is not greater than {rule.value}")
        elif rule.operator == ValidationOperator.LESS_THAN:
            actual, expected = _format_number(value), _format_number(rule.value)
            if actual is None or expected is None or not actual < expected:
                errors.append(f"Field {rule.field} is not less than {rule.value}")
        # EXISTS is satisfied by reaching this point
    return errors


def _format_date(value) -> str | None:
    if isinstance(value, datetime):
        parsed = value
    elif _is_number(value):
        # Epoch milliseconds, as provider APIs emit them
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()


def _format_number(value) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def transform_record(record: dict, rules: list[TransformationRule]) -> dict:
    transformed: dict = {}
    for rule in rules:
        value = get_nested_value(record, rule.source_field)
        if rule.transformation == Transformation.DIRECT:
            transformed[rule.target_field] = value
        elif value is None:
            transformed[rule.target_field] = None
        elif rule.transformation == Transformation.FORMAT_DATE:
            transformed[rule.target_field] = _format_date(value)
        elif rule.transformation == Transformation.FORMAT_NUMBER:
            transformed[rule.target_field] = _format_number(value)
        elif rule.transformation == Transformation.EXTRACT_TEXT:
            transformed[rule.target_field] = str(value)[:MAX_TEXT_LENGTH]
    return transformed


def quality_score(record: dict, rules: list[ValidationRule]) -> float:
    """100 minus a fixed penalty per missing required field, floored at 0."""
    score = 100
    for rule in rules:
        if rule.required and _is_missing(get_nested_value(record, rule.field)):
            score -= MISSING_FIELD_PENALTY
    return float(max(0, score))


def apply_rule(rule: EvidenceGenerationRule, records: list[dict]) -> dict:
    """Validate and transform every record of a data source."""
    items: list[dict] = []
    errors: list[dict] = []
    scores: list[float] = []
    for index, record in enumerate(records):
        scores.append(quality_score(record, rule.validation_rules))
        record_errors = validate_record(record, rule.validation_rules)
        if record_errors:
            errors.append({"index": index, "errors": record_errors})
            continue
        items.append(transform_record(record, rule.transformation_rules))

    return {
        "items": items,
        "rejected": len(errors),
        "errors": errors[:MAX_RECORDED_ERRORS],
        "quality_score": round(sum(scores) / len(scores), 2) if scores else 0.0,
    }


async def generate_evidence(
    session: AsyncSession,
    connection: IntegrationConnectionRow,
    sync_result,
    generated_by: str,
    job_id: str | None = None,
) -> list[AutomatedEvidenceRow]:
    """Create draft evidence for every matching rule with at least one valid record.

    Args:
        session: Open session; the caller commits.
        connection: The connection whose sync produced ``sync_result``.
        sync_result: A ``SyncResult`` with per-data-source ``records``.
        generated_by: Actor recorded on the evidence rows.
        job_id: The sync job that produced the payload, if any.
    """
    provider = await IntegrationProviderRepository(session).get(connection.provider_id)
    if not provider:
        raise NotFoundError("IntegrationProvider", connection.provider_id)

    evidence_repo = EvidenceRepository(session)
    automated_repo = AutomatedEvidenceRepository(session)
    control_repo = ControlRepository(session)
    now = utcnow()
    created: list[AutomatedEvidenceRow] = []

    for rule in get_generation_rules(provider.category):
        records = sync_result.records.get(rule.data_source) or []
        if not records:
            continue

        outcome = apply_rule(rule, records)
        if not outcome["items"]:
            logger.info(
                "Rule %s rejected all %d records from %s",
                rule.rule_id, len(records), connection.connection_id,
            )
            continue

        evidence = await evidence_repo.create(
            evidence_id=generate_id("evd_"),
            org_id=connection.org_id,
            title=f"{rule.name} - {now.strftime('%Y-%m-%d')}",
            description=f"{rule.description} (automatically generated from {connection.connection_name})",
            type=EvidenceType.AUTOMATED,
            status=EvidenceStatus.DRAFT,
            source=EVIDENCE_SOURCE,
            added_by=generated_by,
            evidence_metadata={
                "connection_id": connection.connection_id,
                "provider": provider.name,
                "rule_id": rule.rule_id,
                "data_source": rule.data_source,
                "records": len(outcome["items"]),
            },
        )

        for control in await control_repo.list_by_codes(connection.org_id, rule.control_mappings):
            await evidence_repo.link_control(evidence.evidence_id, control.control_id)

        automated = await automated_repo.create(
            automated_evidence_id=generate_id("aevd_"),
            org_id=connection.org_id,
            connection_id=connection.connection_id,
            evidence_id=evidence.evidence_id,
            job_id=job_id,
            rule_id=rule.rule_id,
            automation_status=EvidenceAutomationStatus.GENERATED,
            processed_data={"items": outcome["items"], "validation_errors": outcome["errors"]},
            records_accepted=len(outcome["items"]),
            records_rejected=outcome["rejected"],
            control_mappings=list(rule.control_mappings),
            quality_score=outcome["quality_score"],
            generated_at=now,
            created_by=generated_by,
        )
        created.append(automated)

    logger.info(
        "Generated %d automated evidence items for connection %s",
        len(created), connection.connection_id,
    )
    return created


async def validate_evidence(
    session: AsyncSession,
    automated_evidence_id: str,
    approver_id: str,
    approved: bool,
    comments: str | None = None,
) -> AutomatedEvidenceRow:
    """Record a human review decision on generated evidence."""
    repo = AutomatedEvidenceRepository(session)
    row = await repo.get(automated_evidence_id)
    if not row:
        raise NotFoundError("AutomatedEvidence", automated_evidence_id)
    if row.automation_status in (EvidenceAutomationStatus.APPROVED, EvidenceAutomationStatus.REJECTED):
        raise ConflictError(
            f"Automated evidence '{automated_evidence_id}' was already reviewed",
            details={"automation_status": row.automation_status},
        )

    now = utcnow()
    await repo.update(
        row,
        automation_status=EvidenceAutomationStatus.APPROVED if approved else EvidenceAutomationStatus.REJECTED,
        validated_at=now,
        approved_at=now if approved else None,
        review={
            "reviewer_id": approver_id,
            "approved": approved,
            "comments": comments,
            "reviewed_at": now.isoformat(),
        },
    )

    if approved:
        evidence_repo = EvidenceRepository(session)
        evidence = await evidence_repo.get(row.evidence_id)
        if evidence:
            await evidence_repo.update(evidence, status=EvidenceStatus.APPROVED)

    logger.info("Automated evidence %s reviewed by %s: approved=%s", automated_evidence_id, approver_id, approved)
    return row


async def evidence_stats(session: AsyncSession, org_id: str) -> dict:
    stats = {
        "total_generated": 0,
        "pending_validation": 0,
        "approved": 0,
        "rejected": 0,
        "average_quality_score": 0.0,
    }
    weighted_quality = 0.0
    for status, count, avg_quality in await AutomatedEvidenceRepository(session).stats_by_status(org_id):
        stats["total_generated"] += count
        weighted_quality += (avg_quality or 0.0) * count
        if status in (EvidenceAutomationStatus.GENERATED, EvidenceAutomationStatus.PENDING):
            stats["pending_validation"] += count
        elif status == EvidenceAutomationStatus.APPROVED:
            stats["approved"] += count
        elif status == EvidenceAutomationStatus.REJECTED:
            stats["rejected"] += count

    if stats["total_generated"]:
        stats["average_quality_score"] = round(weighted_quality / stats["total_generated"], 2)
    return stats
