"""Taskiq application package."""
