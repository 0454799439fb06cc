# Database package: SQLAlchemy models and lazy session management
