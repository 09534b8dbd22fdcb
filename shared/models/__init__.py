"""
Database models.
"""

from shared.models.mutation import ActionCallRecord, ActionRecord, MutationSessionRecord

__all__ = [
    "MutationSessionRecord",
    "ActionRecord",
    "ActionCallRecord",
]
