"""Builds the controller's collaborators from settings.

This is the only place that constructs boto3 and httpx clients; everything
downstream receives them by injection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import boto3
import httpx
from botocore.config import Config

from node_lifecycle.core.secrets import AwsSecretsManagerStore, SharedSecretProvider
from node_lifecycle.core.settings import LifecycleSettings
from node_lifecycle.inventory.resolver import Ec2Inventory, IdentityResolver
from node_lifecycle.lifecycle.bridge import NotificationBridge
from node_lifecycle.lifecycle.completion import AutoScalingReporter
from node_lifecycle.reconcile.reconciler import DeregistrationReconciler
from node_lifecycle.registry.client import RegistryClient


@dataclass
class Components:
    """Wired collaborators for one process or invocation."""

    secrets: SharedSecretProvider
    resolver: IdentityResolver
    registry: RegistryClient
    reporter: AutoScalingReporter

    def close(self) -> None:
        self.registry.close()


def aws_config(settings: LifecycleSettings) -> Config:
    """botocore config bounding every AWS call by the request timeout."""
    return Config(
        region_name=settings.aws_region,
        connect_timeout=settings.request_timeout_seconds,
        read_timeout=settings.request_timeout_seconds,
        retries={"max_attempts": 2, "mode": "standard"},
    )


def build_components(
    settings: LifecycleSettings,
    *,
    session: Any | None = None,
    http: httpx.Client | None = None,
) -> Components:
    """Construct the secret provider, resolver, registry client and reporter."""
    session = session or boto3.session.Session(region_name=settings.aws_region)
    config = aws_config(settings)

    secrets = SharedSecretProvider(
        AwsSecretsManagerStore(session.client("secretsmanager", config=config)),
        settings.shared_secret_arn,
        settings.shared_secret_key,
    )
    resolver = IdentityResolver(
        Ec2Inventory(session.client("ec2", config=config)),
        api_scheme=settings.node_api_scheme,
        api_path=settings.node_api_path,
    )
    registry = RegistryClient(
        settings.scalelite_api_base_url,
        http or httpx.Client(timeout=settings.request_timeout_seconds),
        timeout=settings.request_timeout_seconds,
    )
    reporter = AutoScalingReporter(session.client("autoscaling", config=config))
    return Components(secrets=secrets, resolver=resolver, registry=registry, reporter=reporter)


def build_reconciler(
    components: Components, settings: LifecycleSettings
) -> DeregistrationReconciler:
    return DeregistrationReconciler(
        components.secrets,
        components.resolver,
        components.registry,
        request_timeout=settings.request_timeout_seconds,
        budget_seconds=settings.reconcile_budget_seconds,
    )


def build_bridge(components: Components, settings: LifecycleSettings) -> NotificationBridge:
    return NotificationBridge(
        build_reconciler(components, settings),
        components.reporter,
        max_workers=settings.max_workers,
        budget_seconds=settings.reconcile_budget_seconds,
    )


__all__ = [
    "Components",
    "aws_config",
    "build_components",
    "build_reconciler",
    "build_bridge",
]
