from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.errors import PolicyNotFound
from odds_engine.models.odds_policy import OddsPolicy
from odds_engine.schemas.policies import PolicyCreate, PolicyUpdate
from odds_engine.services.policy_store import PolicyStore, policy_store

logger = logging.getLogger(__name__)

DEFAULT_POLICY_NAME = "default"


async def list_policies(session: AsyncSession) -> list[OddsPolicy]:
    stmt = select(OddsPolicy).order_by(OddsPolicy.id).execution_options(populate_existing=True)
    return list((await session.scalars(stmt)).all())


async def get_policy(session: AsyncSession, policy_id: int) -> OddsPolicy:
    policy = await session.scalar(select(OddsPolicy).where(OddsPolicy.id == policy_id))
    if policy is None:
        raise PolicyNotFound(f"policy {policy_id} not found")
    return policy


async def create_policy(session: AsyncSession, data: PolicyCreate, store: PolicyStore = policy_store) -> OddsPolicy:
    policy = OddsPolicy(**data.model_dump(exclude={"active"}), active=False)
    session.add(policy)
    await session.flush()
    if data.active:
        await _activate(session, policy)
    await session.commit()
    store.invalidate()
    logger.info("odds policy created: id=%s name=%s active=%s", policy.id, policy.name, policy.active)
    return policy


async def update_policy(
    session: AsyncSession, policy_id: int, data: PolicyUpdate, store: PolicyStore = policy_store
) -> OddsPolicy:
    policy = await get_policy(session, policy_id)
    changes = data.model_dump(exclude_unset=True)
    merged = PolicyCreate.model_validate(
        {**{field: getattr(policy, field) for field in PolicyCreate.model_fields if field != "active"}, **changes}
    )
    for field, value in merged.model_dump(exclude={"active"}).items():
        setattr(policy, field, value)
    await session.commit()
    store.invalidate()
    logger.info("odds policy updated: id=%s fields=%s", policy.id, sorted(changes))
    return policy


async def activate_policy(session: AsyncSession, policy_id: int, store: PolicyStore = policy_store) -> OddsPolicy:
    policy = await get_policy(session, policy_id)
    await _activate(session, policy)
    await session.commit()
    store.invalidate()
    logger.info("odds policy activated: id=%s name=%s", policy.id, policy.name)
    return policy


async def _activate(session: AsyncSession, policy: OddsPolicy) -> None:
    await session.execute(
        update(OddsPolicy)
        .where(OddsPolicy.id != policy.id, OddsPolicy.active.is_(True))
        .values(active=False)
        .execution_options(synchronize_session=False)
    )
    policy.active = True
    await session.flush()


async def ensure_default_policy(session: AsyncSession, store: PolicyStore = policy_store) -> OddsPolicy:
    active = await session.scalar(select(OddsPolicy).where(OddsPolicy.active.is_(True)))
    if active is not None:
        return active
    existing = await session.scalar(select(OddsPolicy).where(OddsPolicy.name == DEFAULT_POLICY_NAME))
    if existing is not None:
        return await activate_policy(session, existing.id, store)
    return await create_policy(
        session,
        PolicyCreate(name=DEFAULT_POLICY_NAME, description="Baseline volume-driven pricing", active=True),
        store,
    )
