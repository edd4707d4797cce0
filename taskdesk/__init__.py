"""
taskdesk - task tracking with role-based access control.

Users sign in through an external identity provider; every request is
resolved to an active user whose role decides what they may see and change.
"""

__version__ = "0.1.0"
