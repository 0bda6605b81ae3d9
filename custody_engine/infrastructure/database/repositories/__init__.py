"""SQLAlchemy repository implementations; import the concrete modules directly."""
