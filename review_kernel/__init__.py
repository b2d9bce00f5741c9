"""
Review Kernel

The domain core of the legal review request workflow:
- Request lifecycle with hold/cancel as structured interruptions
- Legal and Compliance review sub-workflows
- Append-only review notes
- Business-hour time tracking per stage
- Record stores with optimistic revision checks
"""

__version__ = "0.1.0"
