import asyncio
import logging
from typing import Awaitable, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from interview_coach.api.deps import get_provider, get_results_pipeline, get_session
from interview_coach.core.exceptions import AppError, InterviewStateError
from interview_coach.core.websocket import manager
from interview_coach.core.logger import set_interview_id
from interview_coach.schemas.interview import (
    ResultsResponse,
    RoadmapItem,
    SessionGoal,
    SessionSnapshot,
    StartInterviewRequest,
)
from interview_coach.services.interview.frame_correlator import FrameCorrelator, LatestFrameFeed
from interview_coach.services.interview.orchestrator import InterviewOrchestrator
from interview_coach.services.interview.session import InterviewSession
from interview_coach.services.interview.speech import ClientSpeechSink, EventListener
from interview_coach.services.pipeline.results_pipeline import ResultsPipeline
from interview_coach.services.providers.base import AIProvider

logger = logging.getLogger(__name__)

interview_router = APIRouter()


@interview_router.websocket("/ws/interview/{client_id}")
async def interview_socket(
    websocket: WebSocket,
    client_id: str,
    provider: AIProvider = Depends(get_provider),
    session: InterviewSession = Depends(get_session),
):
    """
    Live interview channel.

    Client -> server: start, listen_start, listen_stop, capture_error, frame,
    utterance, playback_complete, end.
    Server -> client: state, partial, status, utterance, speak, navigate, error.
    """
    await manager.connect(websocket, client_id)

    outbox: asyncio.Queue = asyncio.Queue()
    emit: EventListener = outbox.put_nowait
    speech = ClientSpeechSink(emit)
    feed = LatestFrameFeed()
    orchestrator = InterviewOrchestrator(provider, session, speech, FrameCorrelator(feed), emit)

    sender = asyncio.create_task(_pump_events(outbox, client_id))
    turn: Optional[asyncio.Task] = None

    try:
        while True:
            message = await websocket.receive_json()
            # Turn tasks copy this context, so they inherit the id as well
            set_interview_id(session.interview_id)
            kind = message.get("type") if isinstance(message, dict) else None
            try:
                if kind == "frame":
                    feed.push(message.get("image", ""))
                elif kind in ("start", "utterance"):
                    if turn is not None and not turn.done():
                        raise InterviewStateError("A turn is already in progress.")
                    if kind == "start":
                        request = StartInterviewRequest.model_validate(message)
                        goal = SessionGoal(name=request.name, role=request.role)
                        coro = orchestrator.start_interview(goal, request.interview_types)
                    else:
                        coro = orchestrator.submit_utterance(str(message.get("text", "")))
                    turn = asyncio.create_task(_run_guarded(coro, emit))
                elif kind == "listen_start":
                    orchestrator.start_listening()
                elif kind == "listen_stop":
                    orchestrator.stop_listening()
                elif kind == "capture_error":
                    orchestrator.capture_failed(str(message.get("message", "Capture unavailable")))
                elif kind == "playback_complete":
                    speech.playback_complete()
                elif kind == "end":
                    orchestrator.end_interview()
                else:
                    logger.warning(f"Unknown message type from {client_id}: {kind}")
                    emit({"type": "error", "content": {"error": f"Unknown message type: {kind}"}})
            except (AppError, ValidationError) as e:
                emit(_error_event(e))

    except WebSocketDisconnect:
        logger.info(f"Interview client {client_id} left")
    finally:
        orchestrator.shutdown()
        if turn is not None and not turn.done():
            turn.cancel()
        sender.cancel()
        manager.disconnect(client_id, websocket)


async def _pump_events(outbox: asyncio.Queue, client_id: str) -> None:
    while True:
        event = await outbox.get()
        await manager.send_json(event, client_id)


async def _run_guarded(coro: Awaitable, emit: EventListener) -> None:
    """Run one orchestrator turn as a task and report its errors to the client."""
    try:
        await coro
    except AppError as e:
        logger.warning(f"Interview turn rejected: {e.message}")
        emit(_error_event(e))
    except Exception as e:
        logger.error(f"Interview turn crashed: {e}", exc_info=True)
        emit({"type": "error", "content": {"error": str(e), "error_type": type(e).__name__}})


def _error_event(error: Exception) -> dict:
    message = error.message if isinstance(error, AppError) else str(error)
    return {"type": "error", "content": {"error": message, "error_type": type(error).__name__}}


@interview_router.get("/session", response_model=SessionSnapshot)
async def read_session(session: InterviewSession = Depends(get_session)):
    return session.snapshot()


@interview_router.post("/session/reset", response_model=SessionSnapshot)
async def reset_session(session: InterviewSession = Depends(get_session)):
    session.reset_session()
    return session.snapshot()


@interview_router.post("/results", response_model=ResultsResponse)
async def run_results_pipeline(pipeline: ResultsPipeline = Depends(get_results_pipeline)):
    """Generate (once) the evaluation and roadmap for the finished interview."""
    return await pipeline.run()


@interview_router.get("/results", response_model=ResultsResponse)
async def read_results(session: InterviewSession = Depends(get_session)):
    if session.evaluation is None:
        raise HTTPException(status_code=404, detail="Results have not been generated yet.")
    return ResultsResponse(evaluation=session.evaluation, roadmap=session.roadmap)


@interview_router.post("/roadmap/{item_id}/toggle", response_model=RoadmapItem)
async def toggle_roadmap_item(item_id: str, session: InterviewSession = Depends(get_session)):
    try:
        return session.toggle_roadmap_item(item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Roadmap item not found: {item_id}")
