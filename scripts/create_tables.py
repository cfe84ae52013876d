"""Create the TaskBridge DynamoDB tables (jobs and task tokens).

Table names, suffix, region and endpoint default to ``DynamoDBConfig``, so
``TASKBRIDGE_DYNAMO_*`` overrides reach the same tables the service uses.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

from taskbridge.core.config import DynamoDBConfig


def table_names(config: DynamoDBConfig, suffix: str | None = None) -> list[str]:
    """Jobs and tokens table names as the service resolves them."""
    suffix = config.table_suffix if suffix is None else suffix
    return [f"{config.jobs_table}{suffix}", f"{config.tokens_table}{suffix}"]


def create_tables(
    ddb: Any,
    suffix: str | None = None,
    config: DynamoDBConfig | None = None,
) -> list[str]:
    """Create both tables keyed by ``jobId``. Skips tables that already exist."""
    config = config or DynamoDBConfig()
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])
    created: list[str] = []

    for table_name in table_names(config, suffix):
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[{"AttributeName": "jobId", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "jobId", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        created.append(table_name)
        print(f"  Created table {table_name}")
    return created


def main() -> None:
    config = DynamoDBConfig()
    parser = argparse.ArgumentParser(description="Create DynamoDB tables for TaskBridge")
    parser.add_argument("--endpoint-url", default=config.endpoint_url, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default=config.table_suffix, help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default=config.region, help="AWS region")
    parser.add_argument("--jobs-table", default=config.jobs_table, help="Jobs table base name")
    parser.add_argument("--tokens-table", default=config.tokens_table, help="Task tokens table base name")
    args = parser.parse_args()

    config = config.model_copy(update={"jobs_table": args.jobs_table, "tokens_table": args.tokens_table})

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix, config=config)
    print("Done!")


if __name__ == "__main__":
    main()
