"""Penpal backend application."""
