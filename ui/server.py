"""
Break It Down Web Server

FastAPI-based server providing:
- Server-rendered login and task list pages (plain HTML forms)
- JSON API for the task list
- AI service health probe at /api/debug/ai
- Recent structured activity log entries at /api/logs/recent
"""

import time
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel

from break_it_down import __version__
from break_it_down.backends import (
    SessionProvider,
    StoreFactory,
    build_session_provider,
    build_store_factory,
)
from break_it_down.config import AppConfig, ConfigProperties
from break_it_down.core import AIServiceHealthProbe, TaskListController, Workspace
from break_it_down.models import OperationOutcome, Task, TaskStatus
from break_it_down.utils.activity_logger import ActivityLogger, LogCategory
from break_it_down.utils.logger import get_logger

from ui.session_registry import SessionRegistry
from ui.views import render_app, render_login

logger = get_logger(__name__)

SESSION_COOKIE = "bid_session"

OUTCOME_STATUS = {
    OperationOutcome.APPLIED: 200,
    OperationOutcome.REJECTED: 409,
    OperationOutcome.FAILED: 502,
}


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class TaskCreate(BaseModel):
    title: str


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[TaskStatus] = None


# ============================================================================
# HELPERS
# ============================================================================

def _redirect(path: str) -> RedirectResponse:
    return RedirectResponse(url=path, status_code=303)


def _outcome_response(outcome: OperationOutcome, controller: TaskListController) -> JSONResponse:
    body: Dict[str, Any] = {"outcome": outcome.value}
    body.update(controller.snapshot().to_dict())
    return JSONResponse(body, status_code=OUTCOME_STATUS[outcome])


def _known_task(workspace: Workspace, task_id: str) -> Task:
    task = workspace.controller.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


# ============================================================================
# APP FACTORY
# ============================================================================

def create_app(
    config: Optional[AppConfig] = None,
    session_provider: Optional[SessionProvider] = None,
    store_factory: Optional[StoreFactory] = None,
    activity: Optional[ActivityLogger] = None,
    ai_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the web app.

    Args:
        config: Settings (default: AppConfig.from_env())
        session_provider: Overrides the provider chosen by config
        store_factory: Overrides the data store chosen by config
        activity: Structured activity log (default: one writing to config.activity_log_file)
        ai_transport: httpx transport for the AI health probe (tests)
    """
    config = config or AppConfig.from_env()
    activity = activity or ActivityLogger(
        log_file=config.activity_log_file,
        max_memory_entries=ConfigProperties.get_int("activity.max_entries", 500),
        enabled=ConfigProperties.get_bool("activity.enabled", True),
    )
    session_provider = session_provider or build_session_provider(config)
    store_factory = store_factory or build_store_factory(config)

    registry = SessionRegistry(session_provider, store_factory, activity=activity)
    probe = AIServiceHealthProbe(
        config.ai_service_url,
        timeout=config.ai_timeout_seconds,
        transport=ai_transport,
        activity=activity,
    )

    activity.log_info(
        "Break It Down server initializing",
        category=LogCategory.SYSTEM,
        tags=["startup"],
        metadata=config.to_dict(),
    )

    app = FastAPI(
        title="Break It Down",
        description="Personal task tracker",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.registry = registry
    app.state.activity = activity
    app.state.probe = probe

    async def current_workspace(request: Request) -> Optional[Workspace]:
        return await registry.workspace(request.cookies.get(SESSION_COOKIE))

    async def require_workspace(request: Request) -> Workspace:
        workspace = await current_workspace(request)
        if workspace is None:
            raise HTTPException(status_code=401, detail="Not signed in")
        return workspace

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    @app.get("/")
    async def index():
        return _redirect("/app")

    @app.get("/login", response_class=HTMLResponse)
    async def login_page(request: Request):
        if await current_workspace(request) is not None:
            return _redirect("/app")
        return HTMLResponse(render_login())

    @app.post("/login")
    async def login(email: str = Form(""), password: str = Form("")):
        result = await session_provider.sign_in(email, password)
        if not result.ok:
            activity.log_warning(
                f"Sign-in failed for {email}", category=LogCategory.AUTH, tags=["sign_in"],
            )
            return HTMLResponse(render_login(error=result.error, email=email), status_code=401)

        activity.log_user_action("sign_in", {"email": result.user.email if result.user else email})
        response = _redirect("/app")
        response.set_cookie(
            SESSION_COOKIE,
            result.access_token or "",
            httponly=True,
            samesite="lax",
            secure=config.cookie_secure,
        )
        return response

    @app.post("/logout")
    async def logout(request: Request):
        next_path = await registry.sign_out(request.cookies.get(SESSION_COOKIE))
        response = _redirect(next_path)
        response.delete_cookie(SESSION_COOKIE)
        return response

    @app.get("/app", response_class=HTMLResponse)
    async def app_page(request: Request):
        token = request.cookies.get(SESSION_COOKIE)
        workspace = await registry.workspace(token)
        if workspace is None:
            response = _redirect("/login")
            if token:
                response.delete_cookie(SESSION_COOKIE)
            return response
        signing_out = registry.is_signing_out(token)
        return HTMLResponse(render_app(workspace.user.email, workspace.controller.snapshot(), signing_out))

    @app.post("/app/tasks")
    async def add_task_form(request: Request, title: str = Form("")):
        workspace = await current_workspace(request)
        if workspace is None:
            return _redirect("/login")
        await workspace.controller.add_task(title)
        return _redirect("/app")

    @app.post("/app/tasks/{task_id}/{action}")
    async def task_action_form(request: Request, task_id: str, action: str):
        workspace = await current_workspace(request)
        if workspace is None:
            return _redirect("/login")
        controller = workspace.controller
        task = controller.get_task(task_id)
        if task is not None:
            if action == "toggle":
                await controller.toggle_complete(task)
            elif action == "archive":
                await controller.archive(task_id)
            elif action == "delete":
                await controller.delete_task(task_id)
            elif action == "edit":
                controller.start_editing(task)
            else:
                raise HTTPException(status_code=404, detail=f"Unknown action: {action}")
        return _redirect("/app")

    @app.post("/app/tasks/{task_id}/edit/cancel")
    async def cancel_edit_form(request: Request, task_id: str):
        workspace = await current_workspace(request)
        if workspace is None:
            return _redirect("/login")
        editing = workspace.controller.editing
        if editing is not None and editing.task_id == task_id:
            workspace.controller.cancel_editing()
        return _redirect("/app")

    @app.post("/app/tasks/{task_id}/edit/save")
    async def save_edit_form(request: Request, task_id: str, title: str = Form("")):
        workspace = await current_workspace(request)
        if workspace is None:
            return _redirect("/login")
        controller = workspace.controller
        if controller.editing is not None and controller.editing.task_id == task_id:
            controller.set_editing_title(title)
            await controller.submit_editing()
        return _redirect("/app")

    # ------------------------------------------------------------------
    # JSON API
    # ------------------------------------------------------------------

    @app.get("/api/tasks")
    async def list_tasks(reload: bool = False, workspace: Workspace = Depends(require_workspace)):
        """Current task list; ``reload=true`` refetches tasks and steps first."""
        controller = workspace.controller
        if reload:
            await controller.load()
            await controller.load_steps()
        body: Dict[str, Any] = {"user": workspace.user.to_dict()}
        body.update(controller.snapshot().to_dict())
        return body

    @app.post("/api/tasks")
    async def create_task(data: TaskCreate, workspace: Workspace = Depends(require_workspace)):
        outcome = await workspace.controller.add_task(data.title)
        return _outcome_response(outcome, workspace.controller)

    @app.patch("/api/tasks/{task_id}")
    async def update_task(task_id: str, data: TaskUpdate, workspace: Workspace = Depends(require_workspace)):
        _known_task(workspace, task_id)
        fields = {k: v for k, v in data.model_dump().items() if v is not None}
        outcome = await workspace.controller.update_task(task_id, **fields)
        return _outcome_response(outcome, workspace.controller)

    @app.post("/api/tasks/{task_id}/toggle")
    async def toggle_task(task_id: str, workspace: Workspace = Depends(require_workspace)):
        task = _known_task(workspace, task_id)
        outcome = await workspace.controller.toggle_complete(task)
        return _outcome_response(outcome, workspace.controller)

    @app.post("/api/tasks/{task_id}/archive")
    async def archive_task(task_id: str, workspace: Workspace = Depends(require_workspace)):
        _known_task(workspace, task_id)
        outcome = await workspace.controller.archive(task_id)
        return _outcome_response(outcome, workspace.controller)

    @app.delete("/api/tasks/{task_id}")
    async def delete_task(task_id: str, workspace: Workspace = Depends(require_workspace)):
        _known_task(workspace, task_id)
        outcome = await workspace.controller.delete_task(task_id)
        return _outcome_response(outcome, workspace.controller)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @app.get("/api/debug/ai")
    async def debug_ai():
        """Probe the AI step-generation service."""
        status_code, body = await probe.run()
        return JSONResponse(body, status_code=status_code)

    @app.get("/api/logs/recent")
    async def get_recent_logs(
        limit: int = 50,
        level: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ):
        """Return recent structured log entries."""
        logs = activity.get_recent_logs(limit=limit, level=level, category=category, search_text=search)
        return {"logs": logs, "total": len(logs)}

    @app.get("/api/logs/health")
    async def get_log_health():
        """Error and warning counts from the activity log."""
        return activity.get_health_summary()

    @app.middleware("http")
    async def log_mutations(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        if request.method in ("POST", "PATCH", "DELETE"):
            duration_ms = (time.time() - start_time) * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms:.0f}ms")
            activity.log_api_call(
                endpoint=request.url.path, method=request.method,
                status_code=response.status_code, duration_ms=duration_ms,
            )
        return response

    return app


app = create_app()


# ============================================================================
# ENTRYPOINT
# ============================================================================

def start_server(host: Optional[str] = None, port: Optional[int] = None):
    """Start the web server."""
    import uvicorn
    config: AppConfig = app.state.config
    host = host or config.host
    port = port or config.port
    app.state.activity.log_info(
        f"Server starting on {host}:{port}",
        category=LogCategory.SYSTEM,
        tags=["startup", "server"],
        metadata={"host": host, "port": port},
    )
    print(f"\n{'='*60}")
    print("  Break It Down")
    print(f"  Open: http://{host}:{port}")
    print(f"  Store: {config.store_backend}  Auth: {config.auth_backend}")
    print(f"  AI service: {config.ai_service_url or 'not configured'}")
    print(f"{'='*60}\n")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    start_server()
