"""
Agency Compliance Engine

Compliance scoring, filing deadlines and penalty accrual for businesses
reporting to several independent government agencies.
"""

__version__ = "1.0.0"
