"""
Utility modules for the clinic scheduler backend.

This package contains the clinic wall-clock and interval helpers and the
storage queries shared by the scheduling services.
"""
