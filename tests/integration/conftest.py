"""Integration fixtures: a seeded record store on LocalStack DynamoDB.

Set LOCALSTACK_URL to point at a non-default endpoint. Every test in this
package is skipped when the endpoint does not answer.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import boto3
import pytest
from botocore.exceptions import BotoCoreError, ClientError

from pnlsync.core.config import AppSettings, DynamoDBConfig
from pnlsync.persistence import create_store

LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
REGION = "us-east-1"
TABLE_SUFFIX = "-inttest"


def _localstack_available() -> bool:
    try:
        boto3.client("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL).list_tables()
    except (BotoCoreError, ClientError):
        return False
    return True


skip_no_localstack = pytest.mark.skipif(
    not _localstack_available(),
    reason="LocalStack not available",
)


@pytest.fixture(scope="session")
def seeded_tables():
    """Create the pnlsync tables and load the sample roster with the seed script."""
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))
    from seed_dynamodb import create_tables, seed_sample_data

    ddb = boto3.resource("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL)
    create_tables(ddb, suffix=TABLE_SUFFIX)
    seed_sample_data(ddb, suffix=TABLE_SUFFIX)
    return TABLE_SUFFIX


@pytest.fixture
def store(seeded_tables):
    """Record store built the way the app builds it, from settings."""
    settings = AppSettings(dynamodb=DynamoDBConfig(
        table_suffix=seeded_tables, region=REGION, endpoint_url=LOCALSTACK_URL,
    ))
    return create_store(settings)
