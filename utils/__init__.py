"""
Shared utilities for Text2SQL system.

This package contains:
- Data models and the exception hierarchy
- Prompt templates
- Vector helpers
"""
