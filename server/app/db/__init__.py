from app.db.db import Base, SessionLocal, dialect_insert, engine, get_db

__all__ = ["Base", "SessionLocal", "dialect_insert", "engine", "get_db"]
