"""Exporter service - scheduling and Prometheus exposition."""
