"""
Chalk Leads widget backend.
"""

__version__ = "1.0.0"
