"""Encrypted, tenant-scoped record layer."""
