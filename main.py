"""
Main entrypoint for the CampShare API.

Usage:
    Run directly (`python main.py`) or with uvicorn (`uvicorn campshare.api.app:create_app --factory`).
    Set SEED_DB=1 to fill an empty database with sample campgrounds on startup.
"""
import os

import uvicorn

from campshare.api.app import create_app
from campshare.config import ConfigError, configure_logging, load_settings
from campshare.db.database import Database
from campshare.db.seed import seed_database


def main():
    """
    Main function to run the API server.
    """
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}")
        print("DB_URL and SECRET must be set in the environment.")
        return 1

    configure_logging(settings.log_level)

    try:
        # Initialize database tables
        database = Database(settings.database_url)
        database.create_tables()

        if os.getenv("SEED_DB"):
            seed_database(database, count=int(os.getenv("SEED_COUNT", 50)))

        app = create_app(settings, database=database)
        port = int(os.getenv("PORT", 8000))
        uvicorn.run(app, host="0.0.0.0", port=port)
        return 0
    except Exception as e:
        print(f"An error occurred in the main function: {str(e)}")
        return 1


if __name__ == "__main__":
    exit_code = main()
    print(f"Exiting with code {exit_code}")
