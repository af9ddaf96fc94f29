"""Database infrastructure: engine, sessions, schema creation."""
from .engine import build_async_engine
from .session import build_sessionmaker
