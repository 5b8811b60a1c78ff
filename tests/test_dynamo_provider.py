"""Tests for the DynamoDB-backed DataStore, using botocore's Stubber."""

import sys
from pathlib import Path

import boto3
import pytest
from botocore.stub import Stubber

sys.path.insert(0, str(Path(__file__).parent.parent))
from ddv.dynamo_provider import DynamoDataStore, parse_description
from ddv.errors import MutationRejected, NotFound, TransportFailure
from ddv.fetch import ItemFilter
from ddv.providers import Item, KeySchema, Table

USERS_TABLE = {
    "TableName": "Users",
    "KeySchema": [
        {"AttributeName": "id", "KeyType": "HASH"},
        {"AttributeName": "created", "KeyType": "RANGE"},
    ],
    "AttributeDefinitions": [
        {"AttributeName": "id", "AttributeType": "S"},
        {"AttributeName": "created", "AttributeType": "N"},
    ],
    "TableStatus": "ACTIVE",
    "ItemCount": 42,
    "TableSizeBytes": 4096,
    "TableArn": "arn:aws:dynamodb:us-east-1:000000000000:table/Users",
    "ProvisionedThroughput": {"ReadCapacityUnits": 5, "WriteCapacityUnits": 1},
    "GlobalSecondaryIndexes": [{
        "IndexName": "by-email",
        "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
        "Projection": {"ProjectionType": "INCLUDE", "NonKeyAttributes": ["name"]},
        "ItemCount": 40,
    }],
}

ALICE = {"id": {"S": "alice"}, "created": {"N": "1"}}


@pytest.fixture
def client():
    return boto3.client(
        "dynamodb",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(client):
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def store(client) -> DynamoDataStore:
    return DynamoDataStore(client)


def stub_describe(stubber: Stubber) -> None:
    stubber.add_response("describe_table", {"Table": USERS_TABLE}, {"TableName": "Users"})


class TestParseDescription:
    """Tests for parse_description."""

    def test_fields(self) -> None:
        desc = parse_description(USERS_TABLE)

        assert desc.key_schema == KeySchema("id", "created")
        assert desc.attribute_definitions == (("id", "S"), ("created", "N"))
        assert (desc.item_count, desc.size_bytes) == (42, 4096)
        assert (desc.read_capacity, desc.write_capacity) == (5, 1)
        [index] = desc.global_indexes
        assert index.name == "by-email"
        assert index.key_schema == KeySchema("email")
        assert index.non_key_attributes == ("name",)
        assert desc.local_indexes == ()


class TestListAndDescribe:
    """Tests for list_tables and describe_table."""

    def test_list_tables_pages(self, store, stubber) -> None:
        stubber.add_response(
            "list_tables",
            {"TableNames": ["Orders", "Users"], "LastEvaluatedTableName": "Users"},
            {"Limit": 2},
        )
        stubber.add_response(
            "list_tables",
            {"TableNames": ["Zebra"]},
            {"ExclusiveStartTableName": "Users", "Limit": 2},
        )

        first = store.list_tables(None, 2)
        assert first.rows == (Table("Orders"), Table("Users"))
        assert first.next_token == "Users"

        second = store.list_tables(first.next_token, 2)
        assert second.rows == (Table("Zebra"),)
        assert second.next_token is None

    def test_list_tables_limit_is_capped(self, store, stubber) -> None:
        stubber.add_response("list_tables", {"TableNames": []}, {"Limit": 100})
        store.list_tables(None, 500)

    def test_missing_table_is_not_found(self, store, stubber) -> None:
        stubber.add_client_error(
            "describe_table",
            service_error_code="ResourceNotFoundException",
            service_message="Requested resource not found",
            http_status_code=400,
        )
        with pytest.raises(NotFound, match="Ghost not found"):
            store.describe_table("Ghost")


class TestQueryOrScan:
    """Tests for item paging and filters."""

    def test_unfiltered_scan(self, store, stubber) -> None:
        last_key = {"id": {"S": "alice"}, "created": {"N": "1"}}
        stubber.add_response(
            "scan",
            {"Items": [ALICE], "LastEvaluatedKey": last_key},
            {"TableName": "Users", "Limit": 1},
        )
        stubber.add_response(
            "scan",
            {"Items": []},
            {"TableName": "Users", "Limit": 1, "ExclusiveStartKey": last_key},
        )

        page = store.query_or_scan("Users", None, None, 1)
        assert page.rows == (Item(ALICE),)
        assert page.next_token == last_key

        page = store.query_or_scan("Users", None, page.next_token, 1)
        assert page.rows == ()
        assert page.next_token is None

    def test_hash_key_equality_queries(self, store, stubber) -> None:
        stub_describe(stubber)
        stubber.add_response("query", {"Items": [ALICE]}, {
            "TableName": "Users",
            "Limit": 10,
            "KeyConditionExpression": "#a = :v",
            "ExpressionAttributeNames": {"#a": "id"},
            "ExpressionAttributeValues": {":v": {"S": "alice"}},
        })

        page = store.query_or_scan("Users", ItemFilter.parse("id = alice"), None, 10)
        assert page.rows == (Item(ALICE),)

    def test_other_filters_scan_with_expression(self, store, stubber) -> None:
        stub_describe(stubber)
        stubber.add_response("scan", {"Items": []}, {
            "TableName": "Users",
            "FilterExpression": "contains(#a, :v)",
            "ExpressionAttributeNames": {"#a": "id"},
            "ExpressionAttributeValues": {":v": {"S": "li"}},
        })
        stubber.add_response("scan", {"Items": []}, {
            "TableName": "Users",
            "FilterExpression": "#a <> :v",
            "ExpressionAttributeNames": {"#a": "age"},
            "ExpressionAttributeValues": {":v": {"N": "30"}},
        })

        store.query_or_scan("Users", ItemFilter.parse("li"))
        # Description is reused for later filters on the same table.
        store.query_or_scan("Users", ItemFilter.parse("age != #30"))

    def test_declared_key_type_is_used(self, store, stubber) -> None:
        stub_describe(stubber)
        stubber.add_response("scan", {"Items": []}, {
            "TableName": "Users",
            "FilterExpression": "#a = :v",
            "ExpressionAttributeNames": {"#a": "created"},
            "ExpressionAttributeValues": {":v": {"N": "1"}},
        })

        store.query_or_scan("Users", ItemFilter.parse("created = 1"))

    def test_other_client_errors_are_transport_failures(self, store, stubber) -> None:
        stubber.add_client_error(
            "scan",
            service_error_code="AccessDeniedException",
            http_status_code=400,
        )
        with pytest.raises(TransportFailure, match="scan failed"):
            store.query_or_scan("Users")


class TestMutations:
    """Tests for put_item and delete_item."""

    def test_put_and_delete(self, store, stubber) -> None:
        stubber.add_response("put_item", {}, {"TableName": "Users", "Item": ALICE})
        stubber.add_response("delete_item", {}, {"TableName": "Users", "Key": ALICE})

        store.put_item("Users", Item(ALICE))
        store.delete_item("Users", ALICE)

    def test_conditional_failure_is_rejected(self, store, stubber) -> None:
        stubber.add_client_error(
            "put_item",
            service_error_code="ConditionalCheckFailedException",
            service_message="The conditional request failed",
            http_status_code=400,
        )
        with pytest.raises(MutationRejected, match="conditional request failed"):
            store.put_item("Users", Item(ALICE))

    def test_missing_table_on_delete_is_not_found(self, store, stubber) -> None:
        stubber.add_client_error(
            "delete_item",
            service_error_code="ResourceNotFoundException",
            http_status_code=400,
        )
        with pytest.raises(NotFound):
            store.delete_item("Users", ALICE)
