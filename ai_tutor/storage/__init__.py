"""
Storage module - Optional mirror of tutor activity.

This module is responsible for:
1. Keeping a side copy of documents, conversations and quizzes
2. Writing that copy in the background without slowing requests down
"""

from .mirror import BackgroundMirror, JsonFileMirror, NullMirror, create_mirror

__all__ = ["BackgroundMirror", "JsonFileMirror", "NullMirror", "create_mirror"]
