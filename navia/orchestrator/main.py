"""Orchestrator FastAPI app: POST /query, streamed chat, sessions, feedback and tasks."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from navia.core.config.loader import load_assistant_config
from navia.core.config.models import AssistantConfig
from navia.core.contracts.gateway import (
    BreakdownRequest,
    BreakdownResponse,
    FeedbackRequest,
    QueryMetadata,
    QueryRequest,
    QueryResponse,
    StreamChatRequest,
    TaskStatusUpdate,
)
from navia.core.contracts.records import TASK_TRANSITIONS
from navia.core.exceptions import InvalidTaskTransition, StorageError, TaskNotFound
from navia.orchestrator.deps import Services, build_services

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")
log = logging.getLogger("orchestrator")

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    # identity comes from the auth layer in front of this service
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def create_app(services: Services | None = None, config: AssistantConfig | None = None) -> FastAPI:
    """App factory. Tests pass prebuilt services; otherwise they are built from config at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        built = None
        if getattr(app.state, "services", None) is None:
            cfg = config or load_assistant_config(project_root=PROJECT_ROOT)
            built = app.state.services = build_services(cfg, project_root=PROJECT_ROOT)
            log.info("Loaded assistant %s with agents %s", cfg.assistant_id, cfg.enabled_domains)
        yield
        if built is not None:
            await built.close()

    app = FastAPI(title="Navia: Orchestrator", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.services = services

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/query", response_model=QueryResponse, response_model_by_alias=True)
    async def query(
        req: QueryRequest,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        result = await services.orchestrator.handle(
            user_id,
            req.query,
            req.session_id,
            user_context=req.user_context,
            session_turns=req.session_messages,
        )
        meta = result.metadata
        return QueryResponse(
            success=result.success,
            summary=result.combined_summary,
            domains=result.domains,
            breakdown=result.breakdown,
            breakdown_tips=result.breakdown_tips or None,
            resources=result.resources,
            sources=result.sources,
            task_ids=result.task_ids or None,
            metadata=QueryMetadata(
                complexity=meta.get("complexity"),
                execution_time=meta.get("execution_time", 0),
                session_id=req.session_id,
                is_first_message=meta.get("is_first_message", False),
                message_id=meta.get("message_id"),
                needs_breakdown=meta.get("needs_breakdown", False),
            ),
        )

    @app.post("/breakdown", response_model=BreakdownResponse, response_model_by_alias=True)
    async def breakdown(
        req: BreakdownRequest,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        log.info("BREAKDOWN [%s]: %s", user_id, req.task[:200])
        planned = await services.breakdown.plan(
            req.task, req.context, req.auto_breakdown, req.user_context.get("ef_profile")
        )
        if planned.result is None:
            return BreakdownResponse(
                needs_breakdown=False,
                complexity=planned.analysis.complexity,
                reasoning="Task is simple enough without breakdown",
                message="This task looks straightforward, you can tackle it directly!",
            )
        return BreakdownResponse(
            needs_breakdown=True,
            complexity=planned.result.complexity,
            reasoning=planned.analysis.reasoning,
            breakdown=planned.result.breakdown,
            estimated_time=planned.result.estimated_time,
            tips=planned.result.tips,
        )

    @app.post("/chat/stream")
    async def chat_stream(
        req: StreamChatRequest,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        messages = [m.model_dump() for m in req.messages]
        return StreamingResponse(
            services.streaming.stream(user_id, req.session_id, messages, req.context),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/chat/sessions")
    async def list_sessions(
        limit: int = 10,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        sessions = await services.clients.messages.list_sessions(user_id, limit=limit)
        return {"sessions": sessions}

    @app.get("/chat/sessions/{session_id}")
    async def session_messages(
        session_id: str,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        turns = await services.clients.messages.list_turns(user_id, session_id=session_id, newest_first=False)
        if not turns:
            raise HTTPException(status_code=404, detail="Session not found")
        return {"session_id": session_id, "messages": [t.model_dump() for t in turns]}

    @app.post("/chat/feedback")
    async def feedback(
        req: FeedbackRequest,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        try:
            return await services.clients.messages.update_feedback(user_id, req.message_id, req.feedback)
        except StorageError:
            raise HTTPException(status_code=404, detail="Message not found")

    @app.get("/tasks")
    async def list_tasks(
        domain: str | None = None,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        tasks = await services.clients.tasks.list_tasks(user_id, domain)
        return {"tasks": [t.model_dump(mode="json") for t in tasks]}

    @app.get("/tasks/stats")
    async def task_stats(user_id: str = Depends(get_user_id), services: Services = Depends(get_services)):
        return await services.clients.tasks.stats(user_id)

    @app.get("/tasks/{task_id}")
    async def get_task(task_id: str, user_id: str = Depends(get_user_id), services: Services = Depends(get_services)):
        task = await services.clients.tasks.get_task(user_id, task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return task.model_dump(mode="json")

    @app.patch("/tasks/{task_id}")
    async def update_task(
        task_id: str,
        body: TaskStatusUpdate,
        user_id: str = Depends(get_user_id),
        services: Services = Depends(get_services),
    ):
        if body.status not in TASK_TRANSITIONS:
            raise HTTPException(status_code=422, detail=f"Unknown status: {body.status}")
        try:
            task = await services.clients.tasks.update_status(user_id, task_id, body.status)
        except TaskNotFound:
            raise HTTPException(status_code=404, detail="Task not found")
        except InvalidTaskTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
        return task.model_dump(mode="json")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
