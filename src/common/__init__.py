"""Shared infrastructure: errors, logging, HTTP fetchers and blob storage."""
