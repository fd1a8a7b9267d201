"""
Quizzes Module
==============

Users, the quizzes they own and the questions inside them.

Responsibilities:
- Relational schema (users -> quizzes -> questions, cascading deletes)
- Validated creation DTOs
- Repositories for the data-access layer
"""

__version__ = "1.0.0"
