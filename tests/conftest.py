"""
xacct-pipeline — shared test fixtures

File: tests/conftest.py
Last updated: 2026-10-19

Purpose
- Canonical boundary configurations for the four interesting capability states.
- Reset global structlog configuration between tests.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog

from xacct_pipeline.config.boundaries import ConsumerBoundaryConfig, SourceBoundaryConfig

SOURCE_ACCOUNT = "111111111111"
CONSUMER_ACCOUNT = "222222222222"
REGION = "ap-northeast-1"
CONSUMER_STORE_ARN = "arn:aws:s3:::codecommit-artifact-kokorozashi"
CONSUMER_KEY_ARN = (
    f"arn:aws:kms:{REGION}:{CONSUMER_ACCOUNT}:key/0f1e2d3c-4b5a-6978-8796-a5b4c3d2e1f0"
)
SOURCE_REPOSITORY_ARN = f"arn:aws:codecommit:{REGION}:{SOURCE_ACCOUNT}:pipeline-test"
SOURCE_ROLE_ARN = f"arn:aws:iam::{SOURCE_ACCOUNT}:role/codecommit-accessrole"


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def local_source() -> SourceBoundaryConfig:
    return SourceBoundaryConfig(account_id=SOURCE_ACCOUNT, region=REGION)


@pytest.fixture
def sharing_source() -> SourceBoundaryConfig:
    return SourceBoundaryConfig(
        account_id=SOURCE_ACCOUNT,
        region=REGION,
        consumer_account_id=CONSUMER_ACCOUNT,
        consumer_store_arn=CONSUMER_STORE_ARN,
        consumer_key_arn=CONSUMER_KEY_ARN,
    )


@pytest.fixture
def local_consumer() -> ConsumerBoundaryConfig:
    return ConsumerBoundaryConfig(account_id=CONSUMER_ACCOUNT, region=REGION)


@pytest.fixture
def sharing_consumer() -> ConsumerBoundaryConfig:
    return ConsumerBoundaryConfig(
        account_id=CONSUMER_ACCOUNT,
        region=REGION,
        source_account_id=SOURCE_ACCOUNT,
    )


@pytest.fixture
def remote_consumer() -> ConsumerBoundaryConfig:
    return ConsumerBoundaryConfig(
        account_id=CONSUMER_ACCOUNT,
        region=REGION,
        source_account_id=SOURCE_ACCOUNT,
        source_repository_arn=SOURCE_REPOSITORY_ARN,
        source_role_arn=SOURCE_ROLE_ARN,
    )
