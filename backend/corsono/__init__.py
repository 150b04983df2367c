"""Corsono backend: media gallery ingestion and listing."""
