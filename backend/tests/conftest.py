import contextlib
import os
from collections.abc import Iterator

import boto3
import pytest
from moto import mock_aws

# Ensure AWS SDK has a region and fake credentials for moto
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")

# Environment variables read at import time by common.config
os.environ.setdefault("ANALYTICS_URL", "https://analytics.example.com/sql")
os.environ.setdefault("ANALYTICS_TOKEN_SECRET_NAME", "analytics/api/token")
os.environ.setdefault("MEASURES_TABLE", "measures")
os.environ.setdefault("COMMIT_SHA", "abc1234")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "sensor-api")


@pytest.fixture(scope="session", autouse=True)
def aws_moto() -> Iterator[None]:
    with mock_aws():
        secrets = boto3.client("secretsmanager")
        with contextlib.suppress(secrets.exceptions.ResourceExistsException):  # type: ignore[attr-defined]
            secrets.create_secret(Name=os.environ["ANALYTICS_TOKEN_SECRET_NAME"], SecretString="TEST_TOKEN")
        yield
