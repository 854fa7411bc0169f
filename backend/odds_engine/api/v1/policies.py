from fastapi import APIRouter, Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.api.v1.errors import to_http, validation_to_http
from odds_engine.database import get_session
from odds_engine.errors import OddsEngineError
from odds_engine.schemas.policies import PolicyCreate, PolicyResponse, PolicyUpdate
from odds_engine.services import policy_service

router = APIRouter(prefix="/policies", tags=["policies"])


@router.get("", response_model=list[PolicyResponse])
async def list_policies(session: AsyncSession = Depends(get_session)) -> list[PolicyResponse]:
    return [PolicyResponse.model_validate(p) for p in await policy_service.list_policies(session)]


@router.post("", response_model=PolicyResponse, status_code=201)
async def create_policy(payload: PolicyCreate, session: AsyncSession = Depends(get_session)) -> PolicyResponse:
    policy = await policy_service.create_policy(session, payload)
    await session.refresh(policy)
    return PolicyResponse.model_validate(policy)


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: int, payload: PolicyUpdate, session: AsyncSession = Depends(get_session)
) -> PolicyResponse:
    try:
        policy = await policy_service.update_policy(session, policy_id, payload)
    except OddsEngineError as exc:
        raise to_http(exc) from exc
    except ValidationError as exc:
        raise validation_to_http(exc) from exc
    await session.refresh(policy)
    return PolicyResponse.model_validate(policy)


@router.post("/{policy_id}/activate", response_model=PolicyResponse)
async def activate_policy(policy_id: int, session: AsyncSession = Depends(get_session)) -> PolicyResponse:
    try:
        policy = await policy_service.activate_policy(session, policy_id)
    except OddsEngineError as exc:
        raise to_http(exc) from exc
    await session.refresh(policy)
    return PolicyResponse.model_validate(policy)
