"""Configuration, persistence, security and error handling shared by all services."""
