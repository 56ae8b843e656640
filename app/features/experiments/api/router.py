"""
Career experiment routes.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.features.experiments.domain.errors import ExperimentServiceError
from app.features.experiments.services.experiment_service import ExperimentService
from app.infrastructure.observability.logging import get_logger
from app.models.api.experiment_request import (
    CompleteExperimentRequest,
    CreateExperimentRequest,
    MilestoneUpdateRequest,
)
from app.models.api.experiment_response import ExperimentListResponse, ExperimentResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/experiments", tags=["experiments"])

ERROR_STATUS_CODES: dict[str, int] = {
    "experiment_not_found": status.HTTP_404_NOT_FOUND,
    "milestone_not_found": status.HTTP_404_NOT_FOUND,
    "invalid_experiment_transition": status.HTTP_409_CONFLICT,
    "experiment_closed": status.HTTP_409_CONFLICT,
    "experiment_validation_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "persistence_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_experiment_service(request: Request) -> ExperimentService:
    service = getattr(request.app.state, "experiment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Experiment service not initialized",
        )
    return service


def _to_http_error(request: Request, error: ExperimentServiceError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = {"error_type": error.error_type, "message": error.message}
    if hasattr(error, "errors"):
        detail["errors"] = error.errors
    logger.info(
        "Experiment request failed",
        path=request.url.path,
        error_type=error.error_type,
        status_code=status_code,
        experiment_id=error.experiment_id,
    )
    return HTTPException(status_code=status_code, detail=detail)


@router.post("", response_model=ExperimentResponse, status_code=status.HTTP_201_CREATED)
async def create_experiment(
    body: CreateExperimentRequest,
    request: Request,
    service: ExperimentService = Depends(get_experiment_service),
):
    try:
        experiment = await service.create_experiment(
            session_id=body.session_id,
            title=body.title,
            experiment_type=body.type,
            description=body.description,
            hypothesis=body.hypothesis,
            scope=body.scope,
            priority=body.priority,
            estimated_duration_days=body.estimated_duration_days,
            success_criteria=body.success_criteria,
            required_resources=body.required_resources,
            potential_barriers=body.potential_barriers,
            milestones=body.milestones,
        )
    except ExperimentServiceError as e:
        raise _to_http_error(request, e) from e
    return ExperimentResponse.from_domain(experiment)


@router.get("/sessions/{session_id}", response_model=ExperimentListResponse)
async def list_session_experiments(
    session_id: str,
    request: Request,
    service: ExperimentService = Depends(get_experiment_service),
):
    try:
        experiments = await service.get_experiments_for_session(session_id)
    except ExperimentServiceError as e:
        raise _to_http_error(request, e) from e
    return ExperimentListResponse(
        experiments=[ExperimentResponse.from_domain(experiment) for experiment in experiments],
        total_count=len(experiments),
    )


@router.get("/{experiment_id}", response_model=ExperimentResponse)
async def get_experiment(
    experiment_id: str,
    request: Request,
    service: ExperimentService = Depends(get_experiment_service),
):
    try:
        experiment = await service.get_experiment_by_id(experiment_id)
    except ExperimentServiceError as e:
        raise _to_http_error(request, e) from e
    if experiment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Experiment not found")
    return ExperimentResponse.from_domain(experiment)


@router.post("/{experiment_id}/{action}", response_model=ExperimentResponse)
async def change_experiment_status(
    experiment_id: str,
    action: str,
    request: Request,
    body: CompleteExperimentRequest | None = None,
    service: ExperimentService = Depends(get_experiment_service),
):
    """Lifecycle actions: start, pause, resume, complete, cancel."""
    actions = {
        "start": service.start_experiment,
        "pause": service.pause_experiment,
        "resume": service.resume_experiment,
        "cancel": service.cancel_experiment,
    }
    try:
        if action == "complete":
            experiment = await service.complete_experiment(
                experiment_id, learnings=body.learnings if body else None
            )
        elif action in actions:
            experiment = await actions[action](experiment_id)
        else:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown action")
    except ExperimentServiceError as e:
        raise _to_http_error(request, e) from e
    return ExperimentResponse.from_domain(experiment)


@router.put("/{experiment_id}/milestones/{milestone_id}", response_model=ExperimentResponse)
async def update_milestone(
    experiment_id: str,
    milestone_id: str,
    body: MilestoneUpdateRequest,
    request: Request,
    service: ExperimentService = Depends(get_experiment_service),
):
    try:
        experiment = await service.set_milestone_completed(
            experiment_id, milestone_id, completed=body.completed
        )
    except ExperimentServiceError as e:
        raise _to_http_error(request, e) from e
    return ExperimentResponse.from_domain(experiment)
