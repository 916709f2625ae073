"""SQLAlchemy persistence: engine/session factory, ORM models, repositories."""
