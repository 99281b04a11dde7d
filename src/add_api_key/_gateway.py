"""Wrap the remote AWS services behind small per-resource-group interfaces.

'why': the reconciler depends on these protocols, so tests substitute in-memory fakes for boto3
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.config import Config

from ._logging import get_logger


_logger = get_logger()

Page = Mapping[str, Any]


class ApiKeyStore(Protocol):
    def list_api_keys(self, position: str | None) -> Page: ...

    def create_api_key(self, name: str, value: str | None) -> Mapping[str, Any]: ...

    def delete_api_key(self, key_id: str) -> None: ...


class UsagePlanStore(Protocol):
    def list_usage_plans(self, position: str | None) -> Page: ...

    def create_usage_plan(self, template: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def delete_usage_plan(self, plan_id: str) -> None: ...

    def add_api_stage(self, plan_id: str, api_id: str, stage: str) -> None: ...

    def remove_api_stage(self, plan_id: str, api_id: str, stage: str) -> None: ...


class UsagePlanKeyStore(Protocol):
    def list_usage_plan_keys(self, plan_id: str, position: str | None) -> Page: ...

    def create_usage_plan_key(self, plan_id: str, key_id: str) -> None: ...


class StackDescriber(Protocol):
    def describe_stack(self, stack_name: str) -> Mapping[str, Any]: ...


class Decryptor(Protocol):
    def decrypt(self, ciphertext: bytes) -> bytes: ...


class ApiGatewayResources:
    """Serve keys, usage plans, and plan-key links from one `apigateway` client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def list_api_keys(self, position: str | None) -> Page:
        return self._client.get_api_keys(**_position_kwargs(position))

    def create_api_key(self, name: str, value: str | None) -> Mapping[str, Any]:
        params: dict[str, object] = {"name": name, "enabled": True}
        if value:
            params["value"] = value
        return self._client.create_api_key(**params)

    def delete_api_key(self, key_id: str) -> None:
        self._client.delete_api_key(apiKey=key_id)

    def list_usage_plans(self, position: str | None) -> Page:
        return self._client.get_usage_plans(**_position_kwargs(position))

    def create_usage_plan(self, template: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._client.create_usage_plan(**dict(template))

    def delete_usage_plan(self, plan_id: str) -> None:
        self._client.delete_usage_plan(usagePlanId=plan_id)

    def add_api_stage(self, plan_id: str, api_id: str, stage: str) -> None:
        self._client.update_usage_plan(
            usagePlanId=plan_id,
            patchOperations=[{"op": "add", "path": "/apiStages", "value": f"{api_id}:{stage}"}],
        )

    def remove_api_stage(self, plan_id: str, api_id: str, stage: str) -> None:
        self._client.update_usage_plan(
            usagePlanId=plan_id,
            patchOperations=[{"op": "remove", "path": "/apiStages", "value": f"{api_id}:{stage}"}],
        )

    def list_usage_plan_keys(self, plan_id: str, position: str | None) -> Page:
        return self._client.get_usage_plan_keys(usagePlanId=plan_id, **_position_kwargs(position))

    def create_usage_plan_key(self, plan_id: str, key_id: str) -> None:
        self._client.create_usage_plan_key(usagePlanId=plan_id, keyId=key_id, keyType="API_KEY")


class CloudFormationStacks:
    def __init__(self, client: Any) -> None:
        self._client = client

    def describe_stack(self, stack_name: str) -> Mapping[str, Any]:
        response = self._client.describe_stacks(StackName=stack_name)
        return response["Stacks"][0]


class KmsDecryptor:
    def __init__(self, client: Any) -> None:
        self._client = client

    def decrypt(self, ciphertext: bytes) -> bytes:
        response = self._client.decrypt(CiphertextBlob=ciphertext)
        return response["Plaintext"]


@dataclass(frozen=True)
class Collaborators:
    """Bundle every remote capability a reconciliation run needs."""

    keys: ApiKeyStore
    plans: UsagePlanStore
    plan_keys: UsagePlanKeyStore
    stacks: StackDescriber
    decryptor_for: Callable[[str], Decryptor]

    @classmethod
    def from_session(cls, session: Any, region: str, timeout: float | None = None) -> Collaborators:
        config = _client_config(timeout)
        gateway = ApiGatewayResources(session.client("apigateway", region_name=region, config=config))
        stacks = CloudFormationStacks(session.client("cloudformation", region_name=region, config=config))

        def decryptor_for(kms_region: str) -> Decryptor:
            return KmsDecryptor(session.client("kms", region_name=kms_region, config=config))

        _logger.debug("built AWS clients: region=%s timeout=%s", region, timeout)
        return cls(keys=gateway, plans=gateway, plan_keys=gateway, stacks=stacks, decryptor_for=decryptor_for)


def build_session(
    *,
    credentials: Mapping[str, Any] | None,
    profile: str | None,
    region: str,
) -> Any:
    """Create a boto3 session from a provider credential bundle or a named profile."""

    if profile:
        return boto3.Session(profile_name=profile, region_name=region)
    kwargs: dict[str, object] = {"region_name": region}
    if credentials:
        access_key = credentials.get("accessKeyId") or credentials.get("aws_access_key_id")
        secret_key = credentials.get("secretAccessKey") or credentials.get("aws_secret_access_key")
        token = credentials.get("sessionToken") or credentials.get("aws_session_token")
        if access_key and secret_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key
            if token:
                kwargs["aws_session_token"] = token
    return boto3.Session(**kwargs)


# --- Private helpers ---


def _position_kwargs(position: str | None) -> dict[str, str]:
    return {"position": position} if position else {}


def _client_config(timeout: float | None) -> Config | None:
    if timeout is None:
        return None
    return Config(read_timeout=timeout, connect_timeout=min(timeout, 10.0))
