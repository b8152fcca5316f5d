from fastapi import APIRouter, Depends

from window_limiter.core.rate_limit import enforce_rate_limit, get_service_limiter
from window_limiter.schemas.decision import CheckRequest, DecisionResponse

router = APIRouter(tags=["Limits"])


@router.post(
    "/limits/check",
    response_model=DecisionResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def check_limit(payload: CheckRequest) -> DecisionResponse:
    """Count one trial for ``payload.key`` and return the decision.

    The decision is returned with status 200 even when ``allowed`` is false;
    the calling service decides how to reject. Invalid keys yield 400, store
    failures 503.
    """
    limiter = await get_service_limiter()
    decision = await limiter.check(payload.key)
    return DecisionResponse.from_decision(decision)
