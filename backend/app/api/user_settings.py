from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.config import settings
from app.db.models import Wallet
from app.db.session import get_db
from app.schemas.wallets import CurrencySettings
from app.services.identity import AuthenticatedUser

router = APIRouter()


@router.get("/currencies", response_model=CurrencySettings)
def currencies(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CurrencySettings:
    # The oldest wallet's currency is the user's default.
    rows = (
        db.query(Wallet.currency)
        .filter(Wallet.user_id == user.user_id)
        .order_by(Wallet.created_at, Wallet.id)
        .all()
    )
    available = list(dict.fromkeys(row.currency for row in rows))
    return CurrencySettings(
        default_currency=available[0] if available else settings.DEFAULT_CURRENCY,
        available_currencies=available,
    )
