"""
Compliance Engine - Services Package

Primitives, deadline/penalty calculation, agency assessors and the
orchestrator that combines them.
"""
