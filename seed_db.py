"""
ResearchStats - Database Seeding Script.

Creates the indexes the statistics aggregations rely on, sets up the
default admin user and, with --demo, inserts a small demo project.

Usage:
    python seed_db.py [--demo]
"""

import logging
import os
import sys
from datetime import datetime, timezone

from bson import ObjectId
from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from utils.auth import hash_password

# Configure logging for the seeding script
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DEMO_PROJECT_ID = ObjectId("64b7f0c2a1b2c3d4e5f60718")


def demo_articles(project_id: ObjectId) -> list:
    """A handful of articles covering every article dimension."""
    base = {
        "projectId": project_id,
        "authors": ["A5000000001"],
        "authorsFullNames": ["Demo Author"],
        "referenceType": "article",
        "oa_status": True,
        "objectFocus": "SHS en général",
        "funding": "Sans financement",
        "positionOnDataOpenAccess": "Neutre",
        "dataTypesDiscussed": ["Entretien"],
        "methodology": ["Entretien"],
        "positionOnOpenAccessAndIssues": ["Aucune"],
        "fields": ["Social Sciences"],
        "subfields": ["Sociology and Political Science"],
    }
    return [
        {**base, "id": "W1", "title": "Open data in SHS", "language": "EN", "openAccess": True,
         "pubyear": 2021, "keywords": ["open data", "ethics"], "discourseGenre": ["Essai réflexif"],
         "barriers": ["D Frein juridique propriété"]},
        {**base, "id": "W2", "title": "Partage des données", "language": "FR", "openAccess": False,
         "pubyear": 2022, "keywords": ["open data"], "discourseGenre": ["Autre", "Essai réflexif"],
         "barriers": ["Aucun frein mentionné"]},
        {**base, "id": "W3", "title": "Data reuse", "language": "EN", "openAccess": True,
         "pubyear": 2022, "keywords": ["reuse"], "discourseGenre": ["Etude de terrain, données"],
         "barriers": ["F Frein technique infra"]},
        {**base, "id": "W4", "title": "Archives ouvertes", "language": "FR", "openAccess": True,
         "pubyear": None, "keywords": ["archives", "open data"], "discourseGenre": ["Autre"],
         "barriers": ["Aucun frein mentionné"]},
    ]


def demo_authors(project_id: ObjectId) -> list:
    """Authors spread across the citation and works buckets."""
    return [
        {"id": "A5000000001", "source": "openalex", "display_name": "Ada Demo", "projectId": project_id,
         "gender": "female", "status": "A", "cited_by_count": 5, "works_count": 3,
         "institutions": ["Université de Demo"], "countries": ["FR"],
         "doctypes": [{"name": "article", "quantity": 3}],
         "top_five_topics": ["Open Science"], "top_five_fields": [{"name": "Social Sciences", "percentage": 80}],
         "top_two_domains": [{"name": "Social Sciences", "percentage": 90}]},
        {"id": "A5000000002", "source": "openalex", "display_name": "Ben Demo", "projectId": project_id,
         "gender": "male", "status": "B", "cited_by_count": 15, "works_count": 12,
         "institutions": ["Université de Demo", "Demo Institute"], "countries": ["FR", "CH"],
         "doctypes": [{"name": "article", "quantity": 10}, {"name": "book", "quantity": 2}],
         "top_five_topics": ["Open Science", "Research Data"],
         "top_five_fields": [{"name": "Social Sciences", "percentage": 60}, {"name": "Computer Science", "percentage": 30}],
         "top_two_domains": [{"name": "Social Sciences", "percentage": 70}]},
        {"id": "MA-demo00003", "source": "manual", "display_name": "Cleo Demo", "projectId": project_id,
         "gender": None, "status": None, "cited_by_count": 60, "works_count": 250,
         "institutions": [], "countries": ["CH"], "doctypes": [],
         "top_five_topics": [], "top_five_fields": [], "top_two_domains": []},
    ]


def seed_database(with_demo: bool = False) -> None:
    """
    Seed the ResearchStats MongoDB database.

    Steps:
        1. Connect to MongoDB using MONGODB_URI from .env
        2. Create indexes on articles, authors and users
        3. Create a default admin user if none exists
        4. Optionally replace the demo project's articles and authors
    """
    load_dotenv()

    mongo_uri = os.getenv("MONGODB_URI")
    if not mongo_uri:
        logger.error("MONGODB_URI is not set in .env. Please check your configuration.")
        return

    client: MongoClient | None = None

    try:
        client = MongoClient(mongo_uri)
        client.admin.command("ping")

        db = client[os.getenv("MONGODB_DATABASE_NAME", "research_stats")]
        logger.info("Connected to MongoDB")

        # Every stats aggregation starts with a $match on projectId
        articles_collection = db["articles"]
        articles_collection.create_index("projectId")
        articles_collection.create_index([("id", 1), ("projectId", 1)], unique=True)
        logger.info("Created articles collection with indexes")

        authors_collection = db["authors"]
        authors_collection.create_index("projectId")
        authors_collection.create_index([("id", 1), ("projectId", 1)], unique=True)
        authors_collection.create_index([("display_name", "text")])
        logger.info("Created authors collection with indexes")

        users_collection = db["users"]
        users_collection.create_index("username", unique=True)
        users_collection.create_index("auth_token")
        users_collection.create_index("role")

        admin_username = os.getenv("ADMIN_USERNAME", "admin")
        admin_password = os.getenv("ADMIN_PASSWORD", "admin123")

        admin_exists = users_collection.find_one({"role": "admin"})
        if not admin_exists:
            users_collection.insert_one({
                "username": admin_username,
                "password_hash": hash_password(admin_password),
                "role": "admin",
                "is_active": True,
                "project_ids": [DEMO_PROJECT_ID],
                "created_at": datetime.now(timezone.utc),
                "last_login": None,
                "auth_token": "",
                "token_expires_at": None,
            })
            logger.info("Created default admin user (%s)", admin_username)
        else:
            logger.info("Admin user already exists, skipping")

        if with_demo:
            articles_collection.delete_many({"projectId": DEMO_PROJECT_ID})
            authors_collection.delete_many({"projectId": DEMO_PROJECT_ID})
            articles_collection.insert_many(demo_articles(DEMO_PROJECT_ID))
            authors_collection.insert_many(demo_authors(DEMO_PROJECT_ID))
            logger.info("Inserted demo project %s", DEMO_PROJECT_ID)

        logger.info(
            "Database ready. %d articles, %d authors.",
            articles_collection.count_documents({}),
            authors_collection.count_documents({}),
        )

    except PyMongoError as error:
        logger.error("Could not connect to MongoDB or perform database operations.")
        logger.error("Details: %s", error)
    finally:
        if client is not None:
            client.close()


if __name__ == "__main__":
    seed_database(with_demo="--demo" in sys.argv[1:])
