"""Persistence seam: repository abstraction and in-memory implementation."""
