"""Pydantic schemas for contract snapshots, rules, lifecycle and workflow records."""
