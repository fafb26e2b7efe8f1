"""Evidence generation rule definitions for the built-in providers."""

from pydantic import BaseModel, ConfigDict, Field

from complio.models.enums import ProviderCategory, Transformation, ValidationOperator


class ValidationRule(BaseModel):
    model_config = ConfigDict(extra="forbid")

    field: str  # dotted path into the record, e.g. "name.fullName"
    operator: ValidationOperator
    value: object = None
    required: bool = False


class TransformationRule(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source_field: str
    target_field: str
    transformation: Transformation = Transformation.DIRECT


class EvidenceGenerationRule(BaseModel):
    """Turns one data source of a provider's sync payload into evidence."""

    model_config = ConfigDict(extra="forbid")

    rule_id: str
    name: str
    description: str
    provider_category: ProviderCategory
    data_source: str
    control_mappings: list[str] = Field(default_factory=list)
    validation_rules: list[ValidationRule] = Field(default_factory=list)
    transformation_rules: list[TransformationRule] = Field(default_factory=list)
    is_active: bool = True


def _v(field: str, operator: str, value=None, required: bool = True) -> ValidationRule:
    return ValidationRule(field=field, operator=operator, value=value, required=required)


def _t(source: str, target: str, transformation: str = Transformation.DIRECT) -> TransformationRule:
    return TransformationRule(source_field=source, target_field=target, transformation=transformation)


# ─── Identity providers ──────────────────────────────────────

GOOGLE_WORKSPACE_USERS = EvidenceGenerationRule(
    rule_id="google-workspace-users",
    name="Google Workspace User Directory",
    description="Generate evidence for user access controls from Google Workspace",
    provider_category=ProviderCategory.GOOGLE_WORKSPACE,
    data_source="users",
    control_mappings=["access-control-users", "user-provisioning", "access-review"],
    validation_rules=[
        _v("primaryEmail", ValidationOperator.EXISTS),
        _v("suspended", ValidationOperator.EQUALS, False),
    ],
    transformation_rules=[
        _t("primaryEmail", "userEmail"),
        _t("name.fullName", "userName"),
        _t("lastLoginTime", "lastLogin", Transformation.FORMAT_DATE),
        _t("suspended", "isSuspended"),
    ],
)

GOOGLE_WORKSPACE_GROUPS = EvidenceGenerationRule(
    rule_id="google-workspace-groups",
    name="Google Workspace Group Membership",
    description="Generate evidence for group-based access controls",
    provider_category=ProviderCategory.GOOGLE_WORKSPACE,
    data_source="groups",
    control_mappings=["access-control-groups", "privileged-access", "segregation-duties"],
    validation_rules=[
        _v("email", ValidationOperator.EXISTS),
        _v("directMembersCount", ValidationOperator.GREATER_THAN, 0),
    ],
    transformation_rules=[
        _t("email", "groupEmail"),
        _t("name", "groupName"),
        _t("directMembersCount", "memberCount", Transformation.FORMAT_NUMBER),
        _t("description", "description", Transformation.EXTRACT_TEXT),
    ],
)

ENTRA_USERS = EvidenceGenerationRule(
    rule_id="microsoft-entra-users",
    name="Microsoft Entra ID User Directory",
    description="Generate evidence for user access controls from Microsoft Entra ID",
    provider_category=ProviderCategory.MICROSOFT_ENTRA_ID,
    data_source="users",
    control_mappings=["access-control-users", "user-provisioning", "access-review"],
    validation_rules=[
        _v("userPrincipalName", ValidationOperator.EXISTS),
        _v("accountEnabled", ValidationOperator.EQUALS, True),
    ],
    transformation_rules=[
        _t("userPrincipalName", "userEmail"),
        _t("displayName", "userName"),
        _t("signInActivity.lastSignInDateTime", "lastLogin", Transformation.FORMAT_DATE),
        _t("accountEnabled", "isActive"),
    ],
)

# ─── Cloud configuration ─────────────────────────────────────

AWS_CONFIG_RESOURCES = EvidenceGenerationRule(
    rule_id="aws-config-resources",
    name="AWS Configuration Compliance",
    description="Generate evidence for AWS resource compliance",
    provider_category=ProviderCategory.AWS_CONFIG,
    data_source="configuration_items",
    control_mappings=["cloud-security", "infrastructure-compliance", "resource-inventory"],
    validation_rules=[
        _v("resourceId", ValidationOperator.EXISTS),
        _v("resourceType", ValidationOperator.EXISTS),
    ],
    transformation_rules=[
        _t("resourceId", "resourceId"),
        _t("resourceType", "resourceType"),
        _t("configurationItemStatus", "status"),
        _t("configurationItemCaptureTime", "captureTime", Transformation.FORMAT_DATE),
    ],
)

DEFAULT_RULES: list[EvidenceGenerationRule] = [
    GOOGLE_WORKSPACE_USERS,
    GOOGLE_WORKSPACE_GROUPS,
    ENTRA_USERS,
    AWS_CONFIG_RESOURCES,
]


def get_generation_rules(provider_category: str) -> list[EvidenceGenerationRule]:
    """Active rules for a provider category."""
    return [
        rule for rule in DEFAULT_RULES
        if rule.is_active and rule.provider_category == provider_category
    ]
