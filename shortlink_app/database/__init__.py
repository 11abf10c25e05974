from .connection import Base, SessionLocal, engine, get_db, make_engine

__all__ = ["Base", "SessionLocal", "engine", "get_db", "make_engine"]
