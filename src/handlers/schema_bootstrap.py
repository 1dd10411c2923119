"""
Schema bootstrap, run once per deploy by a CDK trigger.

``create_all`` only issues CREATE TABLE / CREATE INDEX for objects that are
missing, so re-running it against a populated database is a no-op.
"""

from handlers.dependencies import get_database
from utils.logging_config import get_logger

logger = get_logger(__name__)


def lambda_handler(event, context):
    database = get_database()
    database.create_schema()
    logger.info("Database schema ensured", extra={"dialect": database.dialect_name})
    return {"status": "ok"}
