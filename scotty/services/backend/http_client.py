"""
HTTP Backend Client

BackendInterface over the backend's JSON API, using httpx.

Error mapping:
- transport errors and timeouts -> BackendUnavailableError
- 404 -> NotFoundError
- other 4xx/5xx, unparseable JSON -> BackendResponseError

Reads are idempotent and retried on transport failures only; a backend
that answers with an error is not asked again. Mutations are never
retried.
"""

from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from scotty.config import BackendSettings, get_settings
from scotty.metrics.budgets import today_spend
from scotty.models.finance import (
    Achievement,
    BudgetItem,
    FoodType,
    HealthMetrics,
    MonthlySpend,
    SavingsGoal,
    ScottyState,
    Transaction,
    UpcomingBills,
    UserProfile,
)
from scotty.services.backend.interface import (
    AccountsSummary,
    BackendInterface,
    BackendResponseError,
    BackendUnavailableError,
    BudgetDraft,
    ChatReply,
    DailyPayload,
    NotFoundError,
)
from scotty.services.backend.mapping import (
    map_accounts,
    map_backend_quest,
    map_backend_quests,
    map_budget,
    map_budgets,
    map_chat_reply,
    map_daily_payload,
    map_goal,
    map_health_metrics,
    map_profile,
    map_scotty_state,
    map_spending_trend,
    map_transactions,
    map_upcoming_bills,
)


class HttpBackendClient(BackendInterface):
    """
    Backend client for the Scotty API.

    Owns its httpx.AsyncClient unless one is passed in. Use as an async
    context manager or call `aclose()` when done.
    """

    def __init__(
        self,
        settings: Optional[BackendSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().backend
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> "HttpBackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _url(self, path: str) -> str:
        return f"{self._settings.api_url}{path}"

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Single HTTP exchange; returns decoded JSON."""
        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as e:
            raise BackendUnavailableError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {url} not found", status_code=404)
        if response.status_code >= 400:
            raise BackendResponseError(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendResponseError(f"Invalid JSON from {url}: {e}") from e

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET with retry on transport failures."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.read_retry_attempts),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
            retry=retry_if_exception_type(BackendUnavailableError),
            reraise=True,
        ):
            with attempt:
                return await self._request("GET", self._url(path), params=params)

    async def _send(self, method: str, path: str, payload: dict[str, Any]) -> Any:
        return await self._request(method, self._url(path), json=payload)

    def _user_params(self, **extra: Any) -> dict[str, Any]:
        return {"user_id": self._settings.user_id, **extra}

    # =========================================================================
    # READS
    # =========================================================================

    async def check_health(self) -> bool:
        try:
            response = await self._client.get(self._settings.health_url)
        except httpx.TransportError:
            return False
        return response.is_success

    async def fetch_transactions(self, days: int = 30) -> list[Transaction]:
        data = await self._get("/v1/transactions", self._user_params(days=days))
        return map_transactions(data)

    async def fetch_health_metrics(self) -> HealthMetrics:
        data = await self._get("/v1/health-metrics", self._user_params())
        return map_health_metrics(data)

    async def fetch_scotty_state(self) -> ScottyState:
        data = await self._get("/v1/scotty/state", self._user_params())
        return map_scotty_state(data)

    async def fetch_profile(self) -> UserProfile:
        data = await self._get("/v1/profile", self._user_params())
        return map_profile(data)

    async def fetch_budgets(self) -> list[BudgetItem]:
        data = await self._get("/v1/budget", self._user_params())
        return map_budgets(data)

    async def fetch_accounts(self) -> AccountsSummary:
        data = await self._get("/v1/finance/accounts", self._user_params())
        return map_accounts(data)

    async def fetch_today_spend(self) -> float:
        return today_spend(await self.fetch_transactions(days=1))

    async def fetch_daily_payload(self) -> DailyPayload:
        data = await self._get("/v1/home/daily", self._user_params())
        return map_daily_payload(data)

    async def fetch_active_quest(self) -> Optional[Achievement]:
        try:
            data = await self._get("/v1/quests/active", self._user_params())
        except NotFoundError:
            return None
        if isinstance(data, dict) and "quest" in data:
            data = data["quest"]
        if not data:
            return None
        return map_backend_quest(data)

    async def fetch_daily_quests(self) -> list[Achievement]:
        data = await self._get("/v1/quests/list", self._user_params())
        return map_backend_quests(data)

    async def fetch_upcoming_bills(self) -> UpcomingBills:
        data = await self._get(
            "/v1/subscriptions/upcoming",
            self._user_params(days_ahead=self._settings.upcoming_days_ahead),
        )
        return map_upcoming_bills(data)

    async def fetch_spending_trend(self) -> list[MonthlySpend]:
        data = await self._get("/v1/finance/spending-trend", self._user_params())
        return map_spending_trend(data)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def feed(self, food_type: FoodType) -> ScottyState:
        data = await self._send("POST", "/v1/scotty/feed", {
            "user_id": self._settings.user_id,
            "food_type": food_type.value,
        })
        if isinstance(data, dict) and isinstance(data.get("state"), dict):
            data = data["state"]
        return map_scotty_state(data)

    async def send_chat(self, message: str) -> ChatReply:
        data = await self._send("POST", "/v1/chat", {
            "user_id": self._settings.user_id,
            "message": message,
        })
        return map_chat_reply(data)

    async def refresh_daily_quests(self) -> list[Achievement]:
        data = await self._send("POST", "/v1/quests/refresh", {
            "user_id": self._settings.user_id,
        })
        return map_backend_quests(data)

    @staticmethod
    def _budget_body(draft: BudgetDraft) -> dict[str, Any]:
        return draft.model_dump(exclude_none=True, mode="json")

    async def create_budget(self, draft: BudgetDraft) -> BudgetItem:
        body = {"user_id": self._settings.user_id, **self._budget_body(draft)}
        data = await self._send("POST", "/v1/budget", body)
        return map_budget(data.get("budget", data) if isinstance(data, dict) else data)

    async def update_budget(self, budget_id: str, draft: BudgetDraft) -> BudgetItem:
        body = {"user_id": self._settings.user_id, **self._budget_body(draft)}
        data = await self._send("PUT", f"/v1/budget/{budget_id}", body)
        return map_budget(data.get("budget", data) if isinstance(data, dict) else data)

    async def create_goal(self, goal: SavingsGoal) -> SavingsGoal:
        body = {
            "user_id": self._settings.user_id,
            **goal.model_dump(exclude_none=True, exclude={"id", "status"}, mode="json"),
        }
        data = await self._send("POST", "/v1/goals", body)
        return map_goal(data.get("goal", data) if isinstance(data, dict) else data)
