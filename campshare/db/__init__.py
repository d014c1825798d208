"""
Database Module
-------------
Handles database connections, ORM models, and database operations.
Uses SQLAlchemy (PostgreSQL in production, SQLite for tests) and defines the schema for users, sessions,
campgrounds, images and reviews.
"""
