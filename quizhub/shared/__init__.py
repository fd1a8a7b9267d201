"""
Shared Kernel Module
====================

Generic infrastructure used by every module (logging, API middleware).

DO NOT add quiz-specific logic to the shared kernel.
"""

__version__ = "1.0.0"
