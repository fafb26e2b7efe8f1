"""AWS Config adapter: boto3 ``config`` client, called from a worker thread."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from complio.errors.exceptions import IntegrationError, ProviderAuthError
from complio.integrations.adapters.base import ProviderAdapter
from complio.models.enums import ProviderCategory
from complio.services.credentials import ConnectionCredentials

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
BATCH_GET_LIMIT = 100

# Resource types inventoried on every sync
RESOURCE_TYPES: tuple[str, ...] = (
    "AWS::EC2::Instance",
    "AWS::EC2::SecurityGroup",
    "AWS::EC2::VPC",
    "AWS::S3::Bucket",
    "AWS::IAM::User",
    "AWS::IAM::Role",
    "AWS::IAM::Policy",
    "AWS::RDS::DBInstance",
    "AWS::Lambda::Function",
    "AWS::KMS::Key",
)

_AUTH_ERROR_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "ExpiredTokenException",
}


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class AwsConfigAdapter(ProviderAdapter):
    """Pulls configuration items, config rules and rule compliance.

    Credentials used: ``client_id`` (access key id), ``client_secret``
    (secret access key), optional ``access_token`` (session token) and
    ``region``. A pre-built client may be passed for testing.
    """

    provider_category = ProviderCategory.AWS_CONFIG
    data_sources = ("configuration_items", "config_rules", "compliance_results")
    primary_source = "configuration_items"

    def __init__(self, credentials: ConnectionCredentials, client=None):
        super().__init__(credentials)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "config",
                region_name=self.credentials.region or DEFAULT_REGION,
                aws_access_key_id=self.credentials.client_id,
                aws_secret_access_key=self.credentials.client_secret,
                aws_session_token=self.credentials.access_token,
            )
        return self._client

    async def _call(self, operation: str, **kwargs) -> dict:
        try:
            return await asyncio.to_thread(getattr(self.client, operation), **kwargs)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            if code in _AUTH_ERROR_CODES:
                raise ProviderAuthError(self.provider_category, f"{operation}: {code}") from exc
            raise IntegrationError(self.provider_category, f"{operation}: {code}") from exc
        except BotoCoreError as exc:
            raise IntegrationError(self.provider_category, f"{operation}: {exc}") from exc

    async def test_connection(self) -> bool:
        response = await self._call("describe_configuration_recorders")
        recorders = response.get("ConfigurationRecorders", [])
        if not recorders:
            logger.warning("AWS Config reachable but no configuration recorder is set up")
            return False
        return True

    async def fetch_source(self, source: str) -> list[dict]:
        if source == "configuration_items":
            records = await self._configuration_items()
        elif source == "config_rules":
            records = await self._paged("describe_config_rules", "ConfigRules")
        elif source == "compliance_results":
            records = await self._paged("describe_compliance_by_config_rule", "ComplianceByConfigRules")
        else:
            raise ValueError(f"Unknown AWS Config data source: {source}")
        logger.info("Fetched %d AWS Config %s", len(records), source)
        return [_jsonable(r) for r in records]

    async def _paged(self, operation: str, key: str) -> list[dict]:
        records: list[dict] = []
        kwargs: dict = {}
        while True:
            response = await self._call(operation, **kwargs)
            records.extend(response.get(key, []))
            next_token = response.get("NextToken")
            if not next_token:
                return records
            kwargs["NextToken"] = next_token

    async def _configuration_items(self) -> list[dict]:
        identifiers: list[dict] = []
        for resource_type in RESOURCE_TYPES:
            kwargs: dict = {"resourceType": resource_type}
            while True:
                response = await self._call("list_discovered_resources", **kwargs)
                identifiers.extend(
                    {"resourceType": r["resourceType"], "resourceId": r["resourceId"]}
                    for r in response.get("resourceIdentifiers", [])
                )
                next_token = response.get("nextToken")
                if not next_token:
                    break
                kwargs["nextToken"] = next_token

        items: list[dict] = []
        for start in range(0, len(identifiers), BATCH_GET_LIMIT):
            batch = identifiers[start:start + BATCH_GET_LIMIT]
            response = await self._call("batch_get_resource_config", resourceKeys=batch)
            items.extend(response.get("baseConfigurationItems", []))
        return items
