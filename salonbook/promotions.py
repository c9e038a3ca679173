"""
Promotion code lookup and best-effort usage counting
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def validate_promotion(
    db: Session,
    business_id: int,
    code: str,
    service_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Optional[models.Promotion]:
    """Return the promotion if the code is usable today for this service"""
    today = today or date.today()

    promo = db.query(models.Promotion).filter(
        models.Promotion.business_id == business_id,
        models.Promotion.code == code.strip().upper(),
        models.Promotion.active.is_(True),
        models.Promotion.valid_from <= today,
        models.Promotion.valid_to >= today,
        or_(
            models.Promotion.max_uses.is_(None),
            models.Promotion.current_uses < models.Promotion.max_uses,
        ),
    ).first()

    if not promo:
        return None

    if service_id is not None and promo.applicable_services and service_id not in promo.applicable_services:
        return None

    return promo


def increment_usage(db: Session, promotion_id: int) -> bool:
    """Bump the usage counter unless the code is exhausted.

    Runs after the booking has committed. Failures are logged and reported as
    False; they never undo the booking.
    """
    try:
        updated = db.query(models.Promotion).filter(
            models.Promotion.id == promotion_id,
            or_(
                models.Promotion.max_uses.is_(None),
                models.Promotion.current_uses < models.Promotion.max_uses,
            ),
        ).update(
            {models.Promotion.current_uses: models.Promotion.current_uses + 1},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"⚠️ Could not record usage of promotion {promotion_id}: {e}")
        return False

    if not updated:
        logger.warning(f"⚠️ Promotion {promotion_id} reached max uses before usage was recorded")
    return bool(updated)
