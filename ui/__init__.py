"""
Break It Down Web UI - login page, task list page and JSON API

Serves server-rendered HTML forms backed by one TaskListController per
signed-in session.
"""

__version__ = "1.0.0"
