"""
Shared utilities
"""
