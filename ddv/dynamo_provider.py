"""
DataStore implementation backed by the DynamoDB low-level client.

Items are passed through in the client's wire format, so the typed
attribute values reach the views unchanged. botocore errors are mapped
to the viewer's error kinds here and nowhere else.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ddv.errors import MutationRejected, NotFound, TransportFailure
from ddv.fetch import ItemFilter
from ddv.providers import (
    Item,
    KeySchema,
    SecondaryIndex,
    StorePage,
    Table,
    TableDescription,
)

logger = logging.getLogger(__name__)

# The service caps list_tables at 100 names per call.
MAX_LIST_TABLES = 100

NOT_FOUND_CODES = frozenset({"ResourceNotFoundException"})
REJECTED_CODES = frozenset({
    "ConditionalCheckFailedException",
    "ValidationException",
    "TransactionConflictException",
    "ItemCollectionSizeLimitExceededException",
})

FILTER_EXPRESSIONS = {
    "eq": "#a = :v",
    "ne": "#a <> :v",
    "begins_with": "begins_with(#a, :v)",
    "contains": "contains(#a, :v)",
}


def parse_key_schema(elements: list[dict[str, str]]) -> KeySchema:
    hash_key = next(e["AttributeName"] for e in elements if e["KeyType"] == "HASH")
    range_key = next((e["AttributeName"] for e in elements if e["KeyType"] == "RANGE"), None)
    return KeySchema(hash_key, range_key)


def _parse_index(raw: dict[str, Any]) -> SecondaryIndex:
    projection = raw.get("Projection", {})
    return SecondaryIndex(
        name=raw["IndexName"],
        key_schema=parse_key_schema(raw["KeySchema"]),
        projection_type=projection.get("ProjectionType", ""),
        non_key_attributes=tuple(projection.get("NonKeyAttributes", ())),
        size_bytes=raw.get("IndexSizeBytes", 0),
        item_count=raw.get("ItemCount", 0),
        arn=raw.get("IndexArn", ""),
    )


def parse_description(raw: dict[str, Any]) -> TableDescription:
    """Build a TableDescription from the ``Table`` field of describe_table."""
    throughput = raw.get("ProvisionedThroughput", {})
    return TableDescription(
        name=raw["TableName"],
        key_schema=parse_key_schema(raw["KeySchema"]),
        attribute_definitions=tuple(
            (a["AttributeName"], a["AttributeType"]) for a in raw.get("AttributeDefinitions", ())
        ),
        status=raw.get("TableStatus", ""),
        item_count=raw.get("ItemCount", 0),
        size_bytes=raw.get("TableSizeBytes", 0),
        arn=raw.get("TableArn", ""),
        created_at=raw.get("CreationDateTime"),
        read_capacity=throughput.get("ReadCapacityUnits"),
        write_capacity=throughput.get("WriteCapacityUnits"),
        local_indexes=tuple(_parse_index(ix) for ix in raw.get("LocalSecondaryIndexes", ())),
        global_indexes=tuple(_parse_index(ix) for ix in raw.get("GlobalSecondaryIndexes", ())),
    )


class DynamoDataStore:
    """DataStore over a boto3 ``dynamodb`` client."""

    def __init__(self, client: Any) -> None:
        self.client = client
        self._descriptions: dict[str, TableDescription] = {}

    @classmethod
    def connect(
        cls,
        region: str | None = None,
        endpoint_url: str | None = None,
        profile: str | None = None,
        default_region: str = "us-east-1",
    ) -> DynamoDataStore:
        """Create a client from the usual AWS credential chain."""
        try:
            session = boto3.session.Session(profile_name=profile, region_name=region)
            client = session.client(
                "dynamodb",
                region_name=session.region_name or default_region,
                endpoint_url=endpoint_url,
            )
        except BotoCoreError as e:
            raise TransportFailure("Cannot create DynamoDB client", e) from e
        logger.info("connected region=%s endpoint=%s", client.meta.region_name, endpoint_url)
        return cls(client)

    def _call(self, operation: str, mutation: bool = False, **params: Any) -> dict[str, Any]:
        try:
            return getattr(self.client, operation)(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "")
            message = error.get("Message") or code
            if code in NOT_FOUND_CODES:
                raise NotFound(f"{params.get('TableName', 'Resource')} not found", e) from e
            if mutation and code in REJECTED_CODES:
                raise MutationRejected(f"{operation} rejected: {message}", e) from e
            raise TransportFailure(f"{operation} failed ({code})", e) from e
        except BotoCoreError as e:
            raise TransportFailure(f"{operation} failed", e) from e

    def list_tables(self, token: Any = None, limit: int | None = None) -> StorePage:
        params: dict[str, Any] = {}
        if token is not None:
            params["ExclusiveStartTableName"] = token
        if limit:
            params["Limit"] = min(limit, MAX_LIST_TABLES)
        resp = self._call("list_tables", **params)
        tables = tuple(Table(name) for name in resp.get("TableNames", ()))
        return StorePage(tables, resp.get("LastEvaluatedTableName"))

    def describe_table(self, name: str) -> TableDescription:
        resp = self._call("describe_table", TableName=name)
        desc = parse_description(resp["Table"])
        self._descriptions[name] = desc
        return desc

    def _description(self, table: str) -> TableDescription:
        desc = self._descriptions.get(table)
        return desc if desc is not None else self.describe_table(table)

    def _typed_value(self, item_filter: ItemFilter, attribute: str, desc: TableDescription) -> dict[str, str]:
        # Key attributes have a declared type; use it unless the value was
        # explicitly written as a number.
        declared = dict(desc.attribute_definitions).get(attribute)
        if declared in ("S", "N") and item_filter.op in ("eq", "ne") and not item_filter.numeric:
            return {declared: item_filter.value}
        return item_filter.typed_value()

    def query_or_scan(
        self,
        table: str,
        item_filter: ItemFilter | None = None,
        token: Any = None,
        limit: int | None = None,
    ) -> StorePage:
        """One page of items: Query for equality on the hash key, else Scan."""
        params: dict[str, Any] = {"TableName": table}
        if limit:
            params["Limit"] = limit
        if token is not None:
            params["ExclusiveStartKey"] = token

        operation = "scan"
        if item_filter is not None:
            desc = self._description(table)
            attribute = item_filter.attribute or desc.key_schema.hash_key
            params["ExpressionAttributeNames"] = {"#a": attribute}
            params["ExpressionAttributeValues"] = {
                ":v": self._typed_value(item_filter, attribute, desc)
            }
            if item_filter.op == "eq" and attribute == desc.key_schema.hash_key:
                operation = "query"
                params["KeyConditionExpression"] = "#a = :v"
            else:
                params["FilterExpression"] = FILTER_EXPRESSIONS[item_filter.op]

        resp = self._call(operation, **params)
        items = tuple(Item(dict(raw)) for raw in resp.get("Items", ()))
        logger.debug("%s %s returned %d items", operation, table, len(items))
        return StorePage(items, resp.get("LastEvaluatedKey"))

    def put_item(self, table: str, item: Item) -> None:
        self._call("put_item", mutation=True, TableName=table, Item=item.attributes)

    def delete_item(self, table: str, key: dict[str, dict[str, Any]]) -> None:
        self._call("delete_item", mutation=True, TableName=table, Key=key)
