"""
Break It Down - personal task tracker

Tasks move through active, completed and archived; each task can carry an
ordered list of steps. The ``core`` package holds the task list controller
and page flows, ``backends`` the data store and session providers.
"""

__version__ = "1.0.0"
