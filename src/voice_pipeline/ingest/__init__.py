"""Ingestion helpers: Feishu Bitable reader and raw snapshot store."""
