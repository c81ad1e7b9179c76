"""Core infrastructure: configuration, database, auth, notifications."""
