"""
Backend Upgrade Coordinator

This module ties the local state to the remote backend and defines the
startup flow:

1. Probe: is the backend reachable at all? (short bound)
2. Upgrade: three waves of fetches under one overall bound
   - Wave 1 (concurrent, applied together): transactions, health metrics,
     pet state, profile
   - Wave 2 (concurrent, each applied as it settles): budgets, accounts,
     today's spend, upcoming bills, spending trend, daily quests
   - Wave 3 (sequential): daily payload, then the active quest

DESIGN DECISION: The coordinator enforces the boundaries:
- The local state is always usable; the backend can only improve it
- One failing or slow resource never blocks or corrupts its siblings:
  every wave 1 and wave 2 fetch has its own deadline
- A timeout cancels the task it bounds, so nothing writes to the store late
- `backend_connected` is decided once, by the probe, and never revoked

Every fallback is audited.
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, NamedTuple, Optional
from uuid import UUID

from scotty.actions import ActionDispatcher
from scotty.agents.responder import LocalChatResponder, LocalInsightGenerator
from scotty.audit import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
    get_audit_logger,
)
from scotty.config import BackendSettings, get_settings
from scotty.metrics.budgets import today_spend
from scotty.metrics.engine import calculate_scotty_state
from scotty.metrics.trends import monthly_spending_trend, upcoming_subscriptions
from scotty.models.audit import AuditEventBuilder
from scotty.models.finance import Achievement, DailyInsight
from scotty.reconciler import AchievementReconciler
from scotty.seeding.seeder import LocalStateSeeder, primary_account
from scotty.services.backend import BackendInterface, HttpBackendClient
from scotty.store import AppStore


class UpgradeState(str, Enum):
    LOCAL_ONLY = "local_only"
    PROBE_PENDING = "probe_pending"
    UPGRADING = "upgrading"
    PARTIALLY_UPGRADED = "partially_upgraded"
    FULLY_UPGRADED = "fully_upgraded"


class FetchResult(NamedTuple):
    """Outcome of one fault-isolated fetch."""

    resource: str
    ok: bool
    value: Any = None


class BackendUpgradeCoordinator:
    """
    Upgrades the store from the backend, in the background.

    Flow:
    LOCAL_ONLY -> PROBE_PENDING -> LOCAL_ONLY (probe failed, terminal)
                                -> UPGRADING -> PARTIALLY_UPGRADED | FULLY_UPGRADED

    `start()` never raises. PARTIALLY_UPGRADED and FULLY_UPGRADED are
    treated the same by everything downstream.
    """

    def __init__(
        self,
        store: AppStore,
        backend: Optional[BackendInterface],
        seeder: Optional[LocalStateSeeder] = None,
        reconciler: Optional[AchievementReconciler] = None,
        insight_generator: Optional[LocalInsightGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[BackendSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._backend = backend
        self._seeder = seeder or LocalStateSeeder()
        self._reconciler = reconciler or AchievementReconciler()
        self._insights = insight_generator or LocalInsightGenerator()
        self._audit = audit_logger or get_audit_logger()
        self._settings = settings or get_settings().backend
        self._clock = clock
        self._state = UpgradeState.LOCAL_ONLY

    @property
    def state(self) -> UpgradeState:
        return self._state

    # =========================================================================
    # STARTUP
    # =========================================================================

    async def start(self) -> UpgradeState:
        """
        Probe the backend and, if it answers, run the upgrade waves.

        Returns:
            The final state
        """
        correlation_id = create_correlation_id()
        self._state = UpgradeState.PROBE_PENDING

        reachable, reason = await self._probe()
        if not reachable:
            self._store.mark_probe_failed()
            self._state = UpgradeState.LOCAL_ONLY
            self._audit.log(AuditEventBuilder.probe_failed(reason, correlation_id))
            return self._state

        self._store.mark_backend_connected(self._clock())
        self._audit.log(AuditEventBuilder.probe_succeeded(correlation_id))
        self._state = UpgradeState.UPGRADING

        timeout = self._settings.upgrade_timeout_seconds
        self._audit.log(AuditEventBuilder.upgrade_started(correlation_id, timeout))
        try:
            await asyncio.wait_for(self._run_waves(correlation_id), timeout=timeout)
            self._state = UpgradeState.FULLY_UPGRADED
        except asyncio.TimeoutError:
            # Whatever was applied stays applied
            self._state = UpgradeState.PARTIALLY_UPGRADED
            self._audit.log(AuditEventBuilder.upgrade_timed_out(timeout, correlation_id))

        self._audit.log(AuditEventBuilder.upgrade_completed(self._state.value, correlation_id))
        return self._state

    async def _probe(self) -> tuple[bool, str]:
        if self._backend is None:
            return False, "No backend configured"
        try:
            healthy = await asyncio.wait_for(
                self._backend.check_health(),
                timeout=self._settings.probe_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return False, f"Probe timed out after {self._settings.probe_timeout_seconds}s"
        except Exception as e:
            return False, str(e)
        if not healthy:
            return False, "Backend reported unhealthy"
        return True, ""

    async def _run_waves(self, correlation_id: UUID) -> None:
        await self._wave_one(correlation_id)
        await self._wave_two(correlation_id)
        await self._wave_three(correlation_id)

    # =========================================================================
    # FAULT ISOLATION
    # =========================================================================

    async def _isolated(
        self,
        resource: str,
        fetch: Awaitable[Any],
        correlation_id: Optional[UUID],
    ) -> FetchResult:
        """Await `fetch`; any failure becomes a logged, failed result."""
        try:
            return FetchResult(resource, True, await fetch)
        except Exception as e:
            # TimeoutError has an empty message
            reason = str(e) or type(e).__name__
            self._audit.log(AuditEventBuilder.resource_fetch_failed(resource, reason, correlation_id))
            return FetchResult(resource, False)

    async def _bounded(
        self,
        resource: str,
        fetch: Awaitable[Any],
        timeout: float,
        correlation_id: Optional[UUID],
    ) -> FetchResult:
        """Like `_isolated`, but cancels the fetch after `timeout` seconds."""
        return await self._isolated(
            resource,
            asyncio.wait_for(fetch, timeout=timeout),
            correlation_id,
        )

    def _log_wave(self, wave: int, results: list[FetchResult], correlation_id: UUID) -> None:
        self._audit.log(AuditEventBuilder.wave_applied(
            wave,
            succeeded=[r.resource for r in results if r.ok],
            failed=[r.resource for r in results if not r.ok],
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # WAVES
    # =========================================================================

    async def _wave_one(self, correlation_id: UUID) -> None:
        """
        Core resources, each under its own deadline.

        All four settle before anything is applied, so metrics and pet
        state are always derived from the same transaction set. A slow
        resource falls back to its default instead of holding the others.
        """
        backend = self._backend
        timeout = self._settings.resource_timeout_seconds
        results = await asyncio.gather(
            self._bounded(
                "transactions",
                backend.fetch_transactions(self._settings.transaction_history_days),
                timeout,
                correlation_id,
            ),
            self._bounded("health_metrics", backend.fetch_health_metrics(), timeout, correlation_id),
            self._bounded("scotty_state", backend.fetch_scotty_state(), timeout, correlation_id),
            self._bounded("profile", backend.fetch_profile(), timeout, correlation_id),
        )
        transactions_r, metrics_r, scotty_r, profile_r = results
        now = self._clock()

        transactions = transactions_r.value if transactions_r.ok else self._store.transactions
        profile = profile_r.value if profile_r.ok else self._store.profile

        if metrics_r.ok:
            metrics = metrics_r.value
        else:
            metrics = self._seeder.compute_metrics(transactions, profile, now)

        if scotty_r.ok:
            scotty = scotty_r.value
        else:
            current = self._store.scotty_state
            scotty = calculate_scotty_state(metrics, current.last_fed, current.food_credits, now)

        if profile_r.ok:
            self._store.replace_profile(profile)
        if transactions_r.ok:
            self._store.replace_transactions(transactions, now)
            self._rebuild_achievements(None)
        self._store.set_health_metrics(metrics)
        self._store.set_scotty_state(scotty)

        self._log_wave(1, results, correlation_id)

    async def _wave_two(self, correlation_id: UUID) -> None:
        """
        Secondary resources, derived against wave one's transactions.

        They are independent of each other, so each one is applied as
        soon as it settles. An overall timeout mid-wave keeps whatever
        already landed.
        """
        backend = self._backend
        results = await asyncio.gather(
            self._settle("budgets", backend.fetch_budgets(), self._apply_budgets, correlation_id),
            self._settle("accounts", backend.fetch_accounts(), self._apply_accounts, correlation_id),
            self._settle("today_spend", backend.fetch_today_spend(), self._apply_today_spend, correlation_id),
            self._settle(
                "upcoming_bills", backend.fetch_upcoming_bills(), self._apply_upcoming_bills, correlation_id,
            ),
            self._settle(
                "spending_trend", backend.fetch_spending_trend(), self._apply_spending_trend, correlation_id,
            ),
            self._settle("daily_quests", backend.fetch_daily_quests(), self._apply_daily_quests, correlation_id),
        )
        self._log_wave(2, list(results), correlation_id)

    async def _settle(
        self,
        resource: str,
        fetch: Awaitable[Any],
        apply: Callable[[FetchResult], None],
        correlation_id: UUID,
    ) -> FetchResult:
        """Bounded fetch, then apply the result or the resource's default."""
        result = await self._bounded(resource, fetch, self._settings.resource_timeout_seconds, correlation_id)
        apply(result)
        return result

    def _apply_budgets(self, result: FetchResult) -> None:
        # No budgets is a valid state; a failed fetch keeps the current list
        if result.ok:
            self._store.set_budgets(result.value, self._clock())

    def _apply_accounts(self, result: FetchResult) -> None:
        if result.ok:
            summary = result.value
            self._store.set_accounts(summary.accounts, summary.total_balance)
        else:
            account = primary_account(self._store.profile)
            self._store.set_accounts([account], account.balance)

    def _apply_today_spend(self, result: FetchResult) -> None:
        if result.ok:
            self._store.set_daily_spend(result.value)
        else:
            self._store.set_daily_spend(today_spend(self._store.transactions, self._clock()))

    def _apply_upcoming_bills(self, result: FetchResult) -> None:
        if result.ok:
            self._store.set_upcoming_bills(result.value)
        else:
            self._store.set_upcoming_bills(upcoming_subscriptions(self._store.transactions, self._clock()))

    def _apply_spending_trend(self, result: FetchResult) -> None:
        if result.ok:
            self._store.set_spending_trend(result.value)
        else:
            self._store.set_spending_trend(monthly_spending_trend(self._store.transactions, now=self._clock()))

    def _apply_daily_quests(self, result: FetchResult) -> None:
        if result.ok:
            self._store.set_daily_quests(result.value)

    async def _wave_three(self, correlation_id: UUID) -> None:
        """Daily payload, then the active quest. Strictly sequential."""
        insight_r = await self._fetch_daily_insight(correlation_id)

        quest_r = await self._bounded(
            "active_quest",
            self._backend.fetch_active_quest(),
            self._settings.quest_timeout_seconds,
            correlation_id,
        )
        if quest_r.ok:
            self._apply_quest(quest_r.value)

        self._log_wave(3, [insight_r, quest_r], correlation_id)

    async def _fetch_daily_insight(self, correlation_id: Optional[UUID]) -> FetchResult:
        """
        Fetch the daily payload and apply its first insight.

        A timeout means the backend is still generating: not an error,
        the current insight is kept.
        """
        timeout = self._settings.daily_payload_timeout_seconds
        try:
            payload = await asyncio.wait_for(self._backend.fetch_daily_payload(), timeout=timeout)
        except asyncio.TimeoutError:
            self._audit.log(AuditEventBuilder.daily_payload_not_ready(timeout, correlation_id))
            return FetchResult("daily_payload", False)
        except Exception as e:
            self._audit.log(AuditEventBuilder.resource_fetch_failed("daily_payload", str(e), correlation_id))
            return FetchResult("daily_payload", False)

        if payload.insights:
            self._store.set_daily_insight(payload.insights[0])
        return FetchResult("daily_payload", True, payload)

    def _apply_quest(self, quest: Optional[Achievement]) -> None:
        self._rebuild_achievements(quest)

    def _rebuild_achievements(self, quest: Optional[Achievement]) -> None:
        """Rebuild against the stored transactions, keeping this session's completions and dismissals."""
        self._store.set_achievements(self._reconciler.reconcile(
            self._store.transactions,
            quest,
            previous=self._store.achievements,
            dismissed=self._store.dismissed_achievement_ids,
        ))

    # =========================================================================
    # ON-DEMAND REFRESHES
    # =========================================================================

    async def refresh_budgets(self) -> bool:
        """
        Re-run the budget fetch, e.g. after a budget was saved.

        Returns:
            True if fresh budgets were applied
        """
        if not self._store.backend_connected:
            return False
        result = await self._bounded(
            "budgets",
            self._backend.fetch_budgets(),
            self._settings.resource_timeout_seconds,
            None,
        )
        if result.ok:
            self._store.set_budgets(result.value, self._clock())
        return result.ok

    async def refresh_insight(self) -> DailyInsight:
        """
        New insight: from the daily payload if the backend has one ready,
        otherwise generated locally.
        """
        if self._store.backend_connected:
            result = await self._fetch_daily_insight(None)
            if result.ok and result.value.insights:
                return self._store.daily_insight

        insight = self._insights.generate(self._store.transactions, self._clock())
        self._store.set_daily_insight(insight)
        return insight


def create_app_components(
    backend: Optional[BackendInterface] = None,
    use_backend: bool = True,
) -> tuple[AppStore, BackendUpgradeCoordinator, ActionDispatcher]:
    """
    Factory function to create all application components.

    Args:
        backend: Backend to upgrade from. Defaults to the HTTP client.
        use_backend: Set to False to run purely locally (no probe is sent).

    Returns:
        (store, coordinator, dispatcher); call `await coordinator.start()`
        in the background once the UI is showing the store.
    """
    if not use_backend:
        backend = None
    elif backend is None:
        backend = HttpBackendClient()

    configure_logging(get_settings().app.debug_mode)
    audit_logger = AuditLogger()
    seeder = LocalStateSeeder()
    store = AppStore.from_snapshot(seeder.seed())

    coordinator = BackendUpgradeCoordinator(
        store=store,
        backend=backend,
        seeder=seeder,
        audit_logger=audit_logger,
    )
    dispatcher = ActionDispatcher(
        store=store,
        backend=backend,
        coordinator=coordinator,
        chat_responder=LocalChatResponder(),
        audit_logger=audit_logger,
    )
    return store, coordinator, dispatcher
