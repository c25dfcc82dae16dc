"""Interaction logging: schemas and the schema-validated logging form."""
