"""
Compliance Engine - Utilities
"""
