"""Admin back-office endpoints: dashboards, users, plans and payments."""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload

from smart_risk.database import get_db
from smart_risk.models.payment import Payment
from smart_risk.models.profile import Profile
from smart_risk.models.subscription_plan import SubscriptionPlan
from smart_risk.schemas.analytics import AnalyticsResponse, DashboardResponse, QuickStats
from smart_risk.schemas.payments import PaymentListResponse
from smart_risk.schemas.plans import PlanCreate, PlanRecord, PlanStatsResponse, PlanUpdate
from smart_risk.schemas.profiles import ProfileAdminUpdate, ProfileListResponse, ProfileRecord
from smart_risk.auth.dependencies import admin_required
from smart_risk.services import analytics as analytics_service
from smart_risk.services.profiles import search_profiles

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    Admin home screen.

    - User, subscriber and revenue totals
    - User growth against one month ago and conversion rate
    - Five newest users and five newest payments
    """
    return await analytics_service.dashboard(db)


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    time_range: Literal["week", "month", "year"] = Query("month"),
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    Revenue, user and performance analytics for a time range.

    - MRR comes from Stripe when reachable, otherwise it is estimated
      from subscribers and the active plan price (``mrr_source`` says which)
    """
    return await analytics_service.analytics(db, time_range)


@router.get("/subscriptions/stats", response_model=PlanStatsResponse)
async def get_subscription_stats(
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    return await analytics_service.plan_stats(db)


@router.get("/quick-stats", response_model=QuickStats)
async def get_quick_stats(
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    return await analytics_service.quick_stats(db)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get("/users", response_model=ProfileListResponse)
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query("", min_length=0),
    role: Optional[Literal["user", "admin"]] = Query(None),
    subscribed: Optional[bool] = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    List profiles with pagination, search and filters.

    - Search by email or name (case-insensitive)
    - Filter by role and subscription state
    - Sort by created_at, email, full_name, role or subscription_end_date
    """
    profiles, total = await search_profiles(
        db,
        search=search or None,
        role=role,
        subscribed=subscribed,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=skip,
        limit=limit,
    )
    return {
        "items": [ProfileRecord.model_validate(p) for p in profiles],
        "total": total,
        "skip": skip,
        "limit": limit
    }


async def _get_profile_or_404(db: AsyncSession, user_id: str) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return profile


@router.get("/users/{user_id}", response_model=ProfileRecord)
async def get_user(
    user_id: str,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    return await _get_profile_or_404(db, user_id)


@router.put("/users/{user_id}", response_model=ProfileRecord)
async def update_user(
    user_id: str,
    update_data: ProfileAdminUpdate,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    Update any field of a profile.

    - Only the fields present in the body are changed
    """
    profile = await _get_profile_or_404(db, user_id)

    for field, value in update_data.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    logger.info(f"Admin {current_admin.id} updated profile {user_id}")
    return profile


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    Hard-delete a profile row.

    The auth identity is owned by the platform and is left untouched.
    """
    if user_id == current_admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot delete their own profile"
        )
    profile = await _get_profile_or_404(db, user_id)
    await db.delete(profile)
    await db.commit()
    logger.warning(f"Admin {current_admin.id} deleted profile {user_id}")


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

@router.get("/plans", response_model=list[PlanRecord])
async def list_plans(
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(SubscriptionPlan).order_by(SubscriptionPlan.price.asc()))
    return result.scalars().all()


async def _get_plan_or_404(db: AsyncSession, plan_id: str) -> SubscriptionPlan:
    plan = await db.get(SubscriptionPlan, plan_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found"
        )
    return plan


@router.post("/plans", response_model=PlanRecord, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan_data: PlanCreate,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    plan = SubscriptionPlan(**plan_data.model_dump())
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    logger.info(f"Created plan {plan.name} ({plan.price})")
    return plan


@router.put("/plans/{plan_id}", response_model=PlanRecord)
async def update_plan(
    plan_id: str,
    update_data: PlanUpdate,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    plan = await _get_plan_or_404(db, plan_id)
    for field, value in update_data.model_dump(exclude_unset=True).items():
        setattr(plan, field, value)
    await db.commit()
    await db.refresh(plan)
    return plan


@router.post("/plans/{plan_id}/toggle", response_model=PlanRecord)
async def toggle_plan(
    plan_id: str,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """Flip a plan between active and inactive."""
    plan = await _get_plan_or_404(db, plan_id)
    plan.is_active = not plan.is_active
    await db.commit()
    await db.refresh(plan)
    return plan


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: str,
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    plan = await _get_plan_or_404(db, plan_id)
    await db.delete(plan)
    await db.commit()
    logger.info(f"Deleted plan {plan_id}")


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    search: str = Query("", min_length=0),
    status_filter: Optional[Literal["completed", "failed", "refunded", "pending"]] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    List payments with payer and plan, plus revenue statistics.

    - Search by payer email or transaction id
    - Filter by status
    - Statistics cover every payment, not just the current page
    """
    query = select(Payment).outerjoin(Profile, Payment.user_id == Profile.id)
    if search:
        query = query.where(
            or_(Profile.email.ilike(f"%{search}%"), Payment.transaction_id.ilike(f"%{search}%"))
        )
    if status_filter:
        query = query.where(Payment.status == status_filter)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    result = await db.execute(
        query.options(selectinload(Payment.user), selectinload(Payment.plan))
        .order_by(Payment.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    items = [analytics_service.payment_list_item(p) for p in result.scalars().all()]

    all_payments = await db.execute(select(Payment))
    stats = analytics_service.payment_stats(all_payments.scalars().all())

    return {"items": items, "total": total, "stats": stats}
