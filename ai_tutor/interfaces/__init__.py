"""
Interfaces module - User-facing interfaces for the AI Tutor.

This module provides:
1. CLI interface for command-line interaction
2. HTTP API using FastAPI
"""
