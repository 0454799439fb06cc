# Repositories package: SQLAlchemy-backed implementations of the record store
