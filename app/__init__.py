"""Flashcard study service."""
