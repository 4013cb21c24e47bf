from fastapi import Depends, Request

from sendflow.config import Settings, get_settings
from sendflow.core.bill_payment import BillPaymentProcessor
from sendflow.core.claims import ClaimService
from sendflow.core.fees import FeeSchedule, schedule_from_settings
from sendflow.core.limits import MonthlyLimitGuard
from sendflow.core.orchestrator import TransferOrchestrator
from sendflow.store import LedgerStore, build_store


def settings_dep() -> Settings:
    return get_settings()


async def get_store(request: Request, settings: Settings = Depends(settings_dep)) -> LedgerStore:
    """
    Store shared by all requests; created on first use so a missing platform
    configuration surfaces as a 500 on the endpoint instead of a boot failure.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = build_store(settings)
        request.app.state.store = store
    return store


def get_fee_schedule(settings: Settings = Depends(settings_dep)) -> FeeSchedule:
    return schedule_from_settings(settings)


def get_orchestrator(
    store: LedgerStore = Depends(get_store),
    settings: Settings = Depends(settings_dep),
) -> TransferOrchestrator:
    return TransferOrchestrator(
        store,
        fee_schedule=schedule_from_settings(settings),
        limits=MonthlyLimitGuard(store, settings.monthly_limit),
        currency=settings.currency,
        platform_account_id=settings.platform_account_id,
    )


def get_bill_processor(orchestrator: TransferOrchestrator = Depends(get_orchestrator)) -> BillPaymentProcessor:
    return BillPaymentProcessor(orchestrator)


def get_claim_service(store: LedgerStore = Depends(get_store)) -> ClaimService:
    return ClaimService(store)
