# init_db.py
import logging

import mysql.connector
from mysql.connector import Error
from sqlalchemy.engine import make_url

from config import DATABASE_URL

logger = logging.getLogger(__name__)

DEFAULT_CONDITION = "Used"


def create_database(db_url=DATABASE_URL):
    """Create the MySQL database named in ``db_url`` if it is missing."""
    url = make_url(db_url)
    if not url.drivername.startswith("mysql"):
        logger.info("Skipping database creation for %s", url.drivername)
        return True

    try:
        # Connect to MySQL server
        conn = mysql.connector.connect(
            host=url.host or "localhost",
            port=url.port or 3306,
            user=url.username,
            password=url.password or ""
        )
    except Error as e:
        logger.error("Error connecting to MySQL: %s", e)
        return False

    try:
        cursor = conn.cursor()

        # Check if database exists and create if it doesn't
        cursor.execute("SHOW DATABASES LIKE %s", (url.database,))
        result = cursor.fetchone()

        if not result:
            cursor.execute(f"CREATE DATABASE `{url.database}`")
            logger.info("Database '%s' created successfully.", url.database)
        else:
            logger.info("Database '%s' already exists.", url.database)
        return True
    except Error as e:
        logger.error("Error: %s", e)
        return False
    finally:
        conn.close()


def create_tables(bind=None):
    from database import engine
    import models

    models.Base.metadata.create_all(bind=bind or engine)


def backfill_listing_conditions(db):
    """Give listings saved without a condition the default one.

    Returns the number of rows updated; the caller commits.
    """
    import models

    updated = db.query(models.Listing).filter(
        (models.Listing.condition.is_(None)) | (models.Listing.condition == "")
    ).update({models.Listing.condition: DEFAULT_CONDITION}, synchronize_session=False)
    logger.info("Backfilled condition on %s listings", updated)
    return updated


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if create_database():
        create_tables()
        from database import SessionLocal

        db = SessionLocal()
        try:
            backfill_listing_conditions(db)
            db.commit()
        finally:
            db.close()
