"""
FastAPI router for the command terminal.

POST /terminal/query answers a free-text question about the portfolio. The
question is matched against the known report intents first; anything else
goes to the configured generative responder. Responder failures come back as
a QueryResult with error set and HTTP 200, so the terminal can print them.

Stored task completion state is merged into the analysis before routing, so
task reports see what has already been done. Routing runs in the threadpool
because the generative responder makes a blocking HTTP call.
"""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from command_center.core.dependencies import (
    BenchmarksDep,
    ResponderDep,
    SettingsDep,
    WeightsDep,
)
from command_center.models.schemas import QueryResult, TerminalQueryRequest
from command_center.services.analysis import build_query_context, run_analysis
from command_center.services.query_router import route_query
from command_center.services.task_completion import merge_stored_completions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/query", response_model=QueryResult)
async def terminal_query(
    body: TerminalQueryRequest,
    settings: SettingsDep,
    benchmarks: BenchmarksDep,
    weights: WeightsDep,
    responder: ResponderDep,
) -> QueryResult:
    """
    Answer a terminal question against a fresh analysis of body.data.

    Raises:
        HTTPException 400: If the query is empty
    """
    if not body.query or not body.query.strip():
        logger.warning("POST /terminal/query rejected: empty query")
        raise HTTPException(status_code=400, detail="Query is required")

    result = run_analysis(
        body.data,
        benchmarks=benchmarks,
        weights=weights,
        default_inbox_health=settings.default_inbox_health,
    )
    result = await merge_stored_completions(result)
    context = build_query_context(result, body.data, benchmarks)
    return await run_in_threadpool(route_query, body.query, context, responder=responder)


__all__ = ['router']
