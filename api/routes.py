# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for module set operations
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes for the module set orchestrator.

Handlers are plain functions: the service is synchronous and FastAPI runs
them in its thread pool.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from core.errors import BuildBlocked, ModuleSetError
from core.models import BuildAttempt, DispatchState, Selection
from .schemas import (
    BlockageResponse,
    BuildTriggerRequest,
    BuildTriggerResponse,
    ChangeSetRequest,
    DeletedModulesResponse,
    ErrorResponse,
    GraphResponse,
    ModuleListResponse,
    ModuleResponse,
    ModuleSetResponse,
    ModuleSetUpdate,
    QueueResponse,
    SyncResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# Set by the main app at startup

_module_set_service = None


def set_services(module_set_service):
    """Set service instances for dependency injection."""
    global _module_set_service
    _module_set_service = module_set_service


def get_module_set_service():
    if _module_set_service is None:
        raise HTTPException(500, "Services not initialized")
    return _module_set_service


def _raise_for(error: ModuleSetError):
    raise HTTPException(error.status_code, error.message)


# ============================================================================
# MODULE SET
# ============================================================================

def _module_set_response(service) -> ModuleSetResponse:
    return ModuleSetResponse.from_module_set(
        service.module_set,
        module_count=len(service.modules()),
        has_disabled_module=service.registry.has_disabled_module(),
    )


@router.get("/module-set", response_model=ModuleSetResponse, tags=["Module Set"])
def get_module_set():
    """Get module set configuration, counters and status."""
    return _module_set_response(get_module_set_service())


@router.patch(
    "/module-set",
    response_model=ModuleSetResponse,
    tags=["Module Set"],
    responses={422: {"model": ErrorResponse}},
)
def update_module_set(request: ModuleSetUpdate):
    """Update module set configuration. Unset fields are left unchanged."""
    service = get_module_set_service()
    try:
        service.update_configuration(request.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise HTTPException(422, str(e))
    except OSError as e:
        logger.exception(f"Error saving module set: {e}")
        raise HTTPException(500, str(e))
    return _module_set_response(service)


@router.get(
    "/module-set/blockage",
    response_model=BlockageResponse,
    tags=["Module Set"],
)
def get_blockage():
    """Why a build of the module set cannot start now."""
    return BlockageResponse.from_cause(get_module_set_service().cause_of_blockage())


@router.get(
    "/module-set/graph",
    response_model=GraphResponse,
    tags=["Module Set"],
    responses={409: {"model": ErrorResponse}},
)
def get_graph(include_peers: bool = Query(False, description="Add other module sets' modules")):
    """Dependency graph of the active modules."""
    service = get_module_set_service()
    try:
        graph = service.dependency_graph(include_peers=include_peers)
    except ModuleSetError as e:
        _raise_for(e)
    except OSError as e:
        raise HTTPException(500, str(e))
    return GraphResponse.from_graph(graph)


@router.get("/module-set/queue", response_model=QueueResponse, tags=["Module Set"])
def get_queue_items():
    """Submitted builds of the set and its modules that have not finished."""
    items = get_module_set_service().queue_items()
    return QueueResponse(items=items, total=len(items))


# ============================================================================
# MODULES
# ============================================================================

@router.get(
    "/module-set/modules",
    response_model=ModuleListResponse,
    tags=["Modules"],
    responses={409: {"model": ErrorResponse}},
)
def list_modules(
    disabled: Optional[bool] = Query(
        None,
        description="Only disabled (true) or enabled (false) modules; omit for build order",
    ),
):
    """
    List modules.

    Without a filter, returns the active modules in build order.
    """
    service = get_module_set_service()
    try:
        if disabled is None:
            modules = service.module_order()
        else:
            modules = service.registry.list_disabled(disabled)
    except ModuleSetError as e:
        _raise_for(e)

    return ModuleListResponse(
        modules=[ModuleResponse.from_module(m) for m in modules],
        total=len(modules),
    )


@router.get(
    "/module-set/modules/{name}/blockage",
    response_model=BlockageResponse,
    tags=["Modules"],
    responses={404: {"model": ErrorResponse}},
)
def get_module_blockage(name: str):
    """Why a build of one module cannot start now."""
    try:
        cause = get_module_set_service().module_cause_of_blockage(name)
    except KeyError:
        raise HTTPException(404, f"Module not found: {name}")
    return BlockageResponse.from_cause(cause)


@router.post("/module-set/modules/sync", response_model=SyncResponse, tags=["Modules"])
def sync_modules():
    """Register, disable and re-enable modules from workspace descriptors."""
    service = get_module_set_service()
    try:
        report = service.sync_modules()
    except OSError as e:
        logger.exception(f"Error syncing modules: {e}")
        raise HTTPException(500, str(e))
    return SyncResponse(**report)


@router.delete(
    "/module-set/modules/disabled",
    response_model=DeletedModulesResponse,
    tags=["Modules"],
)
def delete_disabled_modules():
    """Delete every disabled module."""
    service = get_module_set_service()
    try:
        deleted = service.delete_disabled_modules()
    except OSError as e:
        logger.exception(f"Error deleting disabled modules: {e}")
        raise HTTPException(500, str(e))
    return DeletedModulesResponse(deleted=deleted, total=len(deleted))


# ============================================================================
# BUILDS
# ============================================================================

@router.post(
    "/module-set/selection/preview",
    response_model=Selection,
    tags=["Builds"],
    responses={409: {"model": ErrorResponse}},
)
def preview_selection(request: ChangeSetRequest):
    """Which modules an incremental build would select, without building."""
    service = get_module_set_service()
    try:
        return service.preview_selection(request.to_change_set(), request.previous_statuses)
    except ModuleSetError as e:
        _raise_for(e)


@router.post(
    "/module-set/builds",
    response_model=BuildTriggerResponse,
    status_code=202,
    tags=["Builds"],
    responses={
        200: {"description": "Nothing to build, skipped"},
        202: {"description": "Build dispatched"},
        409: {"model": ErrorResponse, "description": "Blocked by a build in progress"},
    },
)
def trigger_build(request: BuildTriggerRequest):
    """
    Trigger a module set build.

    Returns immediately; poll GET /module-set/builds/{build_number}.
    Structural errors (dependency cycle, build number persistence) produce
    a failed attempt in the response rather than an HTTP error. A blocked
    module set is rejected with 409 and the blockage cause.
    """
    service = get_module_set_service()
    try:
        attempt = service.trigger_build(
            request.to_change_set(),
            request.upstream_parameters,
            request.previous_statuses or None,
        )
    except BuildBlocked as e:
        _raise_for(e)

    if attempt is None:
        body = BuildTriggerResponse(status="skipped", message="No modules need to be built")
        return JSONResponse(status_code=200, content=body.model_dump(mode="json"))

    logger.info(f"Triggered build #{attempt.build_number} of {attempt.module_set}")
    status = "failed" if attempt.state == DispatchState.FAILED else "dispatched"
    return BuildTriggerResponse(status=status, attempt=attempt, message=attempt.error)


@router.get(
    "/module-set/builds",
    tags=["Builds"],
)
def list_builds(active_only: bool = Query(False)):
    """List build attempts of this process."""
    attempts = get_module_set_service().list_attempts(active_only=active_only)
    return {"builds": [a.model_dump(mode="json") for a in attempts], "total": len(attempts)}


@router.get(
    "/module-set/builds/{build_number}",
    response_model=BuildAttempt,
    tags=["Builds"],
    responses={404: {"model": ErrorResponse}},
)
def get_build(build_number: int):
    """Get a build attempt, refreshed from the execution engine."""
    try:
        return get_module_set_service().refresh(build_number)
    except KeyError:
        raise HTTPException(404, f"Build not found: {build_number}")


@router.post(
    "/module-set/builds/{build_number}/cancel",
    response_model=BuildAttempt,
    tags=["Builds"],
    responses={404: {"model": ErrorResponse}},
)
def cancel_build(build_number: int):
    """Request cancellation of every unfinished build of the attempt."""
    try:
        return get_module_set_service().cancel(build_number)
    except KeyError:
        raise HTTPException(404, f"Build not found: {build_number}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["router", "set_services"]
