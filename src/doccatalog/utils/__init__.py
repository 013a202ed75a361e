"""Utility helpers for the document catalog."""
