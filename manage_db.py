#!/usr/bin/env python3
"""
Database Management Utility

This script provides utilities to manage the book manager database:
- Create the schema (unique indexes) if it is missing
- Show user and book counts
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from utilities.logger import setup_logging
from utilities.config import config
from store.database import MongoDBManager


def build_manager() -> MongoDBManager:
    return MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database
    )


async def create_schema() -> int:
    """Create indexes for users and books."""
    db_manager = build_manager()
    try:
        await db_manager.connect()
        await db_manager.create_schema()
        print(f"Schema ready in database '{config.mongodb_database}'")
        return 0
    except Exception as e:
        print(f"Error creating schema: {e}")
        return 1
    finally:
        await db_manager.disconnect()


async def show_statistics() -> int:
    """Show document counts."""
    db_manager = build_manager()
    try:
        await db_manager.connect()
        stats = await db_manager.get_database_stats()
        print(f"Users: {stats['users']}")
        print(f"Books: {stats['books']}")
        return 0
    except Exception as e:
        print(f"Error getting statistics: {e}")
        return 1
    finally:
        await db_manager.disconnect()


COMMANDS = {
    "create-schema": create_schema,
    "stats": show_statistics,
}


async def main(argv) -> int:
    """Main function."""
    if len(argv) < 2 or argv[1].lower() not in COMMANDS:
        print("Usage: python manage_db.py [create-schema|stats]")
        print()
        print("Commands:")
        print("  create-schema  - Create unique indexes if they don't exist")
        print("  stats          - Show user and book counts")
        return 1

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    return await COMMANDS[argv[1].lower()]()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv)))
