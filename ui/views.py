"""
Server-rendered HTML for the login and task list pages.

Plain HTML forms only; every action posts back to the server, which applies
it through the TaskListController and redirects to ``/app``.
"""

from html import escape
from typing import List, Optional

from break_it_down.core.task_status import is_editable
from break_it_down.models import Step, Task, TaskStatus
from break_it_down.core.task_list_controller import TaskListSnapshot

STATUS_PILL_CLASSES = {
    TaskStatus.ACTIVE: "pill pill-active",
    TaskStatus.COMPLETED: "pill pill-completed",
    TaskStatus.ARCHIVED: "pill pill-archived",
}

TITLE_CLASSES = {
    TaskStatus.ACTIVE: "title",
    TaskStatus.COMPLETED: "title title-completed",
    TaskStatus.ARCHIVED: "title title-archived",
}

EMPTY_MESSAGE = "No tasks yet. Add one above."
LOADING_MESSAGE = "Loading tasks..."

_STYLE = """
body { font-family: system-ui, sans-serif; max-width: 48rem; margin: 2rem auto; padding: 0 1rem; color: #18181b; }
header { display: flex; justify-content: space-between; align-items: center; }
form.inline { display: inline; }
.error { background: #fef2f2; border: 1px solid #fecaca; color: #b91c1c; padding: .5rem .75rem; border-radius: .375rem; }
.pill { font-size: .75rem; padding: .1rem .5rem; border-radius: 999px; border: 1px solid #d4d4d8; }
.pill-active { background: #eff6ff; color: #1d4ed8; }
.pill-completed { background: #f0fdf4; color: #15803d; }
.pill-archived { background: #f4f4f5; color: #71717a; }
.title-completed { text-decoration: line-through; }
.title-archived { text-decoration: line-through; color: #a1a1aa; }
.muted { color: #71717a; }
li.task { list-style: none; border: 1px solid #e4e4e7; border-radius: .5rem; padding: .75rem; margin: .5rem 0; }
ol.steps { margin: .5rem 0 0 1.25rem; font-size: .9rem; }
.step-done { text-decoration: line-through; color: #a1a1aa; }
"""


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n<head>\n"
        "<meta charset=\"utf-8\">\n"
        f"<title>{escape(title)}</title>\n"
        f"<style>{_STYLE}</style>\n"
        "</head>\n<body>\n"
        f"{body}\n"
        "</body>\n</html>\n"
    )


def _button(label: str, action: str, disabled: bool = False, css: str = "") -> str:
    attrs = " disabled" if disabled else ""
    cls = f' class="{css}"' if css else ""
    return (
        f'<form class="inline" method="post" action="{escape(action)}">'
        f'<button type="submit"{cls}{attrs}>{escape(label)}</button></form>'
    )


def toggle_label(task: Task) -> str:
    return "Mark active" if task.status == TaskStatus.COMPLETED else "Complete"


def render_login(error: Optional[str] = None, email: str = "") -> str:
    error_html = f'<p class="error" role="alert">{escape(error)}</p>' if error else ""
    body = f"""
<h1>Break It Down</h1>
<p class="muted">Sign in to see your tasks.</p>
{error_html}
<form method="post" action="/login">
  <p><label>Email <input type="email" name="email" value="{escape(email)}" required></label></p>
  <p><label>Password <input type="password" name="password" required></label></p>
  <p><button type="submit">Sign in</button></p>
</form>
"""
    return _page("Sign in - Break It Down", body)


def render_steps(steps: List[Step]) -> str:
    if not steps:
        return ""
    items = "".join(
        f'<li class="{"step-done" if s.done else "step"}">{escape(s.text)}</li>'
        for s in steps
    )
    return f'<ol class="steps">{items}</ol>'


def render_task(task: Task, snapshot: TaskListSnapshot) -> str:
    """One row of the task list: title or edit form, status pill, actions, steps."""
    busy = snapshot.is_busy(task.id)
    editable = is_editable(task)
    base = f"/app/tasks/{escape(task.id)}"

    if snapshot.is_editing(task.id):
        draft = snapshot.editing.draft_title if snapshot.editing else task.title
        title_html = (
            f'<form class="inline" method="post" action="{base}/edit/save">'
            f'<input type="text" name="title" value="{escape(draft)}" aria-label="Task title">'
            f'<button type="submit"{" disabled" if busy else ""}>Save</button></form> '
            + _button("Cancel", f"{base}/edit/cancel")
        )
    else:
        title_html = f'<span class="{TITLE_CLASSES[task.status]}">{escape(task.title)}</span>'

    actions = " ".join([
        _button("Edit", f"{base}/edit", disabled=busy or not editable),
        _button(toggle_label(task), f"{base}/toggle", disabled=busy or not editable),
        _button("Archive", f"{base}/archive", disabled=busy or not editable),
        _button("Delete", f"{base}/delete", disabled=busy, css="danger"),
    ])

    return (
        f'<li class="task" id="task-{escape(task.id)}">'
        f'<div>{title_html} <span class="{STATUS_PILL_CLASSES[task.status]}">{escape(task.status.value)}</span></div>'
        f'<div class="actions">{actions}</div>'
        f"{render_steps(list(snapshot.steps_for(task.id)))}"
        "</li>"
    )


def render_task_list(snapshot: TaskListSnapshot) -> str:
    if snapshot.loading:
        return f'<p class="muted">{LOADING_MESSAGE}</p>'
    if not snapshot.tasks:
        return f'<p class="muted">{EMPTY_MESSAGE}</p>'
    rows = "\n".join(render_task(task, snapshot) for task in snapshot.tasks)
    return f'<ul class="tasks">\n{rows}\n</ul>'


def render_app(email: str, snapshot: TaskListSnapshot, signing_out: bool = False) -> str:
    error_html = f'<p class="error" role="alert">{escape(snapshot.error)}</p>' if snapshot.error else ""
    sign_out = _button("Signing out..." if signing_out else "Sign out", "/logout", disabled=signing_out)
    body = f"""
<header>
  <div><h1>Break It Down</h1><p class="muted">Signed in as {escape(email)}</p></div>
  <div>{sign_out}</div>
</header>
<form method="post" action="/app/tasks">
  <input type="text" name="title" value="{escape(snapshot.new_title)}" placeholder="What do you need to do?" aria-label="New task">
  <button type="submit">Add</button>
</form>
{error_html}
<h2>Tasks <span class="muted">{len(snapshot.tasks)} total</span></h2>
{render_task_list(snapshot)}
"""
    return _page("Break It Down", body)
