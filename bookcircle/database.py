import logging
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from bookcircle import settings

logger = logging.getLogger(__name__)


def _aws_kwargs():
    # Check AWS credentials
    if not settings.AWS_ACCESS_KEY or not settings.AWS_SECRET_KEY:
        raise RuntimeError("AWS_ACCESS_KEY_ID or AWS_SECRET_ACCESS_KEY environment variable is not set.")

    kwargs = {
        "region_name": settings.AWS_REGION,
        "aws_access_key_id": settings.AWS_ACCESS_KEY,
        "aws_secret_access_key": settings.AWS_SECRET_KEY,
    }
    if settings.AWS_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.AWS_ENDPOINT_URL
    return kwargs


@lru_cache(maxsize=None)
def get_dynamodb():
    return boto3.resource("dynamodb", **_aws_kwargs())


@lru_cache(maxsize=None)
def get_s3_client():
    return boto3.client("s3", **_aws_kwargs())


def reset_clients():
    """Drop cached boto3 handles so the next call builds fresh ones."""
    get_dynamodb.cache_clear()
    get_s3_client.cache_clear()


def users_table():
    return get_dynamodb().Table(settings.USERS_TABLE)


def books_table():
    return get_dynamodb().Table(settings.BOOKS_TABLE)


def messages_table():
    return get_dynamodb().Table(settings.MESSAGES_TABLE)


def cart_table():
    return get_dynamodb().Table(settings.CART_TABLE)


# DynamoDB rejects partition key values over 2048 bytes and sort keys over 1024
MAX_PARTITION_KEY_BYTES = 2048
MAX_SORT_KEY_BYTES = 1024


def fits_partition_key(value: str) -> bool:
    return len(value.encode("utf-8")) <= MAX_PARTITION_KEY_BYTES


def fits_sort_key(value: str) -> bool:
    return len(value.encode("utf-8")) <= MAX_SORT_KEY_BYTES


# Run a query or scan to the end, following LastEvaluatedKey
def fetch_all(operation, **kwargs):
    items = []
    while True:
        response = operation(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _gsi(name, hash_key, range_key=None):
    key_schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    if range_key:
        key_schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
    return {
        "IndexName": name,
        "KeySchema": key_schema,
        "Projection": {"ProjectionType": "ALL"},
    }


TABLE_DEFINITIONS = {
    settings.USERS_TABLE: {
        "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "username", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [_gsi("username-index", "username")],
    },
    settings.BOOKS_TABLE: {
        "KeySchema": [{"AttributeName": "book_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "book_id", "AttributeType": "S"},
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [_gsi("user_id-created_at-index", "user_id", "created_at")],
    },
    settings.MESSAGES_TABLE: {
        "KeySchema": [
            {"AttributeName": "conversation_id", "KeyType": "HASH"},
            {"AttributeName": "message_key", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "conversation_id", "AttributeType": "S"},
            {"AttributeName": "message_key", "AttributeType": "S"},
            {"AttributeName": "sender", "AttributeType": "S"},
            {"AttributeName": "recipient", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            _gsi("sender-message_key-index", "sender", "message_key"),
            _gsi("recipient-message_key-index", "recipient", "message_key"),
        ],
    },
    settings.CART_TABLE: {
        "KeySchema": [
            {"AttributeName": "user_id", "KeyType": "HASH"},
            {"AttributeName": "book_id", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "book_id", "AttributeType": "S"},
        ],
    },
}


# Create every table that doesn't exist yet
def create_tables():
    dynamodb = get_dynamodb()
    existing_tables = [table.name for table in dynamodb.tables.all()]
    for table_name, definition in TABLE_DEFINITIONS.items():
        if table_name in existing_tables:
            logger.info("Table '%s' already exists.", table_name)
            continue
        try:
            table = dynamodb.create_table(
                TableName=table_name,
                BillingMode="PAY_PER_REQUEST",
                **definition
            )
            logger.info("Table '%s' created.", table_name)

            table.wait_until_exists()

            logger.info("Table '%s' ready to use.", table_name)
        except ClientError as e:
            logger.error("Create table error for '%s': %s", table_name, e)
            raise


# Create the image bucket if it doesn't exist
def create_bucket():
    s3_client = get_s3_client()
    try:
        s3_client.head_bucket(Bucket=settings.S3_BUCKET)
        logger.info("Bucket '%s' already exists.", settings.S3_BUCKET)
        return
    except ClientError as e:
        if e.response["Error"]["Code"] not in {"404", "NoSuchBucket"}:
            raise

    if settings.AWS_REGION == "us-east-1":
        s3_client.create_bucket(Bucket=settings.S3_BUCKET)
    else:
        s3_client.create_bucket(
            Bucket=settings.S3_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": settings.AWS_REGION},
        )
    logger.info("Bucket '%s' created.", settings.S3_BUCKET)
