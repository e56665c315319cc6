"""
Create the Store database schema.

Builds every table described by the discovered entity maps, against
DATABASE_URL or the Cloud SQL instance from the environment.
Existing tables are left untouched.
"""

import asyncio
import sys

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from store import config  # noqa: E402
from store.db import ConfigurationError, DatabaseConnection  # noqa: E402
from store.db.mapping import get_entity_mapper, get_store_model  # noqa: E402
from store.utils.logging import setup_logging  # noqa: E402


async def create_schema(assume_yes: bool) -> None:
    print("🚀 Store Schema Tool")
    print("=" * 50)

    try:
        model = get_store_model()
    except ConfigurationError as e:
        print(f"❌ Entity mappings are inconsistent: {e}")
        sys.exit(1)

    mapper = get_entity_mapper()
    print(f"\nFound {len(mapper.mappings)} entity map(s):")
    for entity_map in mapper.mappings:
        print(f"  - {type(entity_map).__name__} -> {entity_map.table_name}")

    print("\n⚠️  This will create missing tables in:")
    if config.DATABASE_URL:
        print(f"   URL: {config.DATABASE_URL}")
    else:
        print(f"   Instance: {config.INSTANCE_CONNECTION_NAME}")
        print(f"   Database: {config.DB_NAME}")
        print(f"   User: {config.DB_USER}")
        print("   Auth: IAM (Cloud SQL Connector)")

    if not assume_yes:
        response = input("\nProceed? (yes/no): ").strip().lower()
        if response not in ["yes", "y"]:
            print("❌ Cancelled")
            sys.exit(0)

    print("\n🔌 Connecting...")
    await DatabaseConnection.initialize()
    try:
        await DatabaseConnection.create_schema()
    finally:
        await DatabaseConnection.close()

    print("\n" + "=" * 50)
    print(f"✅ Schema ready ({len(model.metadata.tables)} tables)")


def main():
    setup_logging()
    asyncio.run(create_schema(assume_yes="--yes" in sys.argv[1:]))


if __name__ == "__main__":
    main()
