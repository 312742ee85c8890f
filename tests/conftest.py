"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import httpx
import pytest

from nutriscan.config import Settings
from nutriscan.containers import AppContainer
from nutriscan.domain.foods import (
    ConsumedFood,
    Food,
    FoodGroup,
    FoodHistoryEntry,
    FoodStatus,
)
from nutriscan.domain.users import UserRecord
from nutriscan.services.analysis import (
    AnalysisClient,
    AnalysisOrchestrator,
    AnalysisService,
)
from nutriscan.services.cache import InMemoryCache
from nutriscan.services.catalog import (
    CatalogRepository,
    FoodCatalogService,
    UserFoodHistoryRepository,
)
from nutriscan.services.news import NewsClient, NewsService
from nutriscan.services.quota import QuotaTracker, ScanHistoryRepository
from nutriscan.services.recommendations import (
    CandidateRepository,
    RecommendationService,
    TagAffinityEngine,
)
from nutriscan.services.saving import (
    FoodHistoryRepository,
    FoodRepository,
    SaveOrchestrator,
    StorageClient,
)
from nutriscan.services.summary import (
    ConsumptionRepository,
    FoodGroupRepository,
    NutritionAggregator,
    TagResolver,
    UserRepository,
)

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@dataclass
class InMemoryFoodRepository(
    FoodRepository, CatalogRepository, CandidateRepository, FoodGroupRepository
):
    """In-memory food and food group repository for tests."""

    foods: dict[int, Food] = field(default_factory=dict)
    groups: dict[int, str] = field(default_factory=dict)
    group_queries: list[list[int]] = field(default_factory=list)
    fail_create: bool = False
    fail_link: bool = False
    next_id: int = 1

    def add_food(self, **overrides: object) -> Food:
        values: dict[str, object] = {
            "name": "Nasi Goreng",
            "calories": 100.0,
            "sugar": 1.0,
            "protein": 10.0,
            "fat": 5.0,
            "carbohydrate": 20.0,
            "grade": "B",
            "image_url": "https://cdn.example/food/x",
            "tags": [],
            "type": "main course",
            "status": FoodStatus.COMPLETE,
            "created_at": datetime.now(tz=UTC),
        }
        values.update(overrides)
        food = Food(id=self.next_id, **values)  # type: ignore[arg-type]
        self.next_id += 1
        self.foods[food.id] = food
        return food

    def create_food(self, payload: dict[str, object]) -> Food:
        if self.fail_create:
            raise RuntimeError("database unavailable")
        values = dict(payload)
        values["status"] = FoodStatus(values["status"])
        return self.add_food(**values)

    def get_food(self, food_id: int) -> Food | None:
        return self.foods.get(food_id)

    def link_image(self, food_id: int, image_url: str) -> Food | None:
        if self.fail_link:
            raise RuntimeError("update rejected")
        food = self.foods.get(food_id)
        if food is None:
            return None
        linked = replace(food, image_url=image_url, status=FoodStatus.COMPLETE)
        self.foods[food_id] = linked
        return linked

    def list_pending_foods(self, created_before: datetime) -> list[Food]:
        return [
            food
            for food in self.foods.values()
            if food.status is FoodStatus.PENDING_IMAGE
            and food.created_at is not None
            and food.created_at < created_before
        ]

    def search_foods(
        self, name: str, tags: list[int], offset: int, limit: int
    ) -> tuple[list[Food], int]:
        matches = [
            food
            for food in sorted(self.foods.values(), key=lambda food: food.id)
            if food.status is FoodStatus.COMPLETE
            and name.lower() in food.name.lower()
            and set(tags) <= set(food.tags)
        ]
        return matches[offset : offset + limit], len(matches)

    def list_complete_foods(self, limit: int) -> list[Food]:
        return [
            food for food in self.foods.values() if food.status is FoodStatus.COMPLETE
        ][:limit]

    def get_food_groups(self, group_ids: list[int]) -> list[FoodGroup]:
        self.group_queries.append(list(group_ids))
        return [
            FoodGroup(id=group_id, name=self.groups[group_id])
            for group_id in group_ids
            if group_id in self.groups
        ]


@dataclass
class InMemoryFoodHistoryRepository(
    FoodHistoryRepository, ConsumptionRepository, UserFoodHistoryRepository
):
    """In-memory food history repository joined to a food repository."""

    food_repository: InMemoryFoodRepository
    entries: list[FoodHistoryEntry] = field(default_factory=list)
    fail_create: bool = False
    fail_rating: bool = False

    def add_entry(
        self,
        user_id: UUID,
        food_id: int,
        created_at: datetime,
        rating: int | None = None,
    ) -> FoodHistoryEntry:
        entry = FoodHistoryEntry(
            id=len(self.entries) + 1,
            user_id=user_id,
            food_id=food_id,
            rating=rating,
            created_at=created_at,
        )
        self.entries.append(entry)
        return entry

    def create_entry(
        self, user_id: UUID, food_id: int, created_at: datetime
    ) -> FoodHistoryEntry:
        if self.fail_create:
            raise RuntimeError("history insert failed")
        return self.add_entry(user_id, food_id, created_at)

    def get_latest_entry(self, user_id: UUID, food_id: int) -> FoodHistoryEntry | None:
        entries = self.list_entries(user_id, food_id)
        return entries[0] if entries else None

    def list_entries(self, user_id: UUID, food_id: int) -> list[FoodHistoryEntry]:
        return sorted(
            (
                entry
                for entry in self.entries
                if entry.user_id == user_id and entry.food_id == food_id
            ),
            key=lambda entry: entry.created_at,
            reverse=True,
        )

    def set_rating(self, entry_id: int, rating: int) -> None:
        if self.fail_rating:
            raise RuntimeError("rating update failed")
        for index, entry in enumerate(self.entries):
            if entry.id == entry_id:
                self.entries[index] = replace(entry, rating=rating)
                return
        raise RuntimeError("Failed to update food rating")

    def list_consumed(
        self, user_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[ConsumedFood]:
        rows = [
            ConsumedFood(
                history=entry, food=self.food_repository.foods[entry.food_id]
            )
            for entry in self.entries
            if entry.user_id == user_id
            and (start is None or entry.created_at >= start)
            and (end is None or entry.created_at < end)
        ]
        return sorted(rows, key=lambda row: row.history.created_at, reverse=True)


@dataclass
class InMemoryScanHistoryRepository(ScanHistoryRepository):
    """In-memory scan ledger for tests."""

    scans: list[tuple[UUID, datetime]] = field(default_factory=list)
    fail_count: bool = False
    fail_add: bool = False

    def count_scans(self, user_id: UUID, start: datetime, end: datetime) -> int:
        if self.fail_count:
            raise RuntimeError("count failed")
        return sum(
            1
            for scan_user, created_at in self.scans
            if scan_user == user_id and start <= created_at < end
        )

    def add_scan(self, user_id: UUID, created_at: datetime) -> None:
        if self.fail_add:
            raise RuntimeError("insert failed")
        self.scans.append((user_id, created_at))


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user repository for tests."""

    users: dict[UUID, UserRecord] = field(default_factory=dict)

    def add_user(self, name: str = "Rani") -> UserRecord:
        user = UserRecord(id=uuid4(), name=name, email=f"{name.lower()}@example.com")
        self.users[user.id] = user
        return user

    def get_user(self, user_id: UUID) -> UserRecord | None:
        return self.users.get(user_id)


@dataclass
class FakeStorageClient(StorageClient):
    """Fake blob storage that keeps objects in memory."""

    objects: dict[str, bytes] = field(default_factory=dict)
    uploaded_keys: list[str] = field(default_factory=list)
    fail: bool = False
    delay_seconds: float = 0.0

    async def upload(
        self, bucket: str, key: str, data: bytes, content_type: str
    ) -> str:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.uploaded_keys.append(key)
        self.objects[f"{bucket}/{key}"] = data
        return f"https://storage.example/{bucket}/{key}"


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Fake analysis client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "name": "Gado-gado",
            "calories": 320.5,
            "sugar": 8.0,
            "protein": 14.25,
            "fat": 18.0,
            "carbohydrate": 27.0,
            "grade": "B",
            "tags": [1, 2],
            "type": "main course",
            "confidence": 0.8,
            "notes": None,
        }
    )
    error: Exception | None = None
    delay_seconds: float = 0.0
    calls: int = 0

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.calls += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeNewsClient(NewsClient):
    """Fake news feed that can fail a number of times before answering."""

    payload: object = field(
        default_factory=lambda: {
            "data": [
                {
                    "title": "Eat more vegetables",
                    "url": "https://news.example/veg",
                    "description": "Fibre matters",
                }
            ]
        }
    )
    failures: int = 0
    calls: int = 0

    async def fetch_articles(self) -> object:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise httpx.ConnectError("feed down")
        return self.payload


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def food_repository() -> InMemoryFoodRepository:
    return InMemoryFoodRepository(groups={1: "Vegetables", 2: "Protein"})


@pytest.fixture
def history_repository(
    food_repository: InMemoryFoodRepository,
) -> InMemoryFoodHistoryRepository:
    return InMemoryFoodHistoryRepository(food_repository=food_repository)


@pytest.fixture
def scan_repository() -> InMemoryScanHistoryRepository:
    return InMemoryScanHistoryRepository()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def news_client() -> FakeNewsClient:
    return FakeNewsClient()


@pytest.fixture
def quota_tracker(scan_repository: InMemoryScanHistoryRepository) -> QuotaTracker:
    return QuotaTracker(repository=scan_repository, daily_allowance=5)


@pytest.fixture
def analysis_orchestrator(
    quota_tracker: QuotaTracker,
    analysis_client: FakeAnalysisClient,
    scan_repository: InMemoryScanHistoryRepository,
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        quota_tracker=quota_tracker,
        analysis_service=AnalysisService(
            client=analysis_client,
            model="gpt-5.2",
            reasoning_effort="medium",
            store=False,
        ),
        scan_repository=scan_repository,
        timeout_seconds=1.0,
    )


@pytest.fixture
def save_orchestrator(
    food_repository: InMemoryFoodRepository,
    history_repository: InMemoryFoodHistoryRepository,
    storage_client: FakeStorageClient,
) -> SaveOrchestrator:
    return SaveOrchestrator(
        food_repository=food_repository,
        history_repository=history_repository,
        storage_client=storage_client,
        bucket="food-images",
        upload_timeout_seconds=1.0,
    )


@pytest.fixture
def tag_resolver(food_repository: InMemoryFoodRepository) -> TagResolver:
    return TagResolver(repository=food_repository, cache=InMemoryCache())


@pytest.fixture
def nutrition_aggregator(
    history_repository: InMemoryFoodHistoryRepository,
    user_repository: InMemoryUserRepository,
    tag_resolver: TagResolver,
) -> NutritionAggregator:
    return NutritionAggregator(
        consumption_repository=history_repository,
        user_repository=user_repository,
        tag_resolver=tag_resolver,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    food_repository: InMemoryFoodRepository,
    history_repository: InMemoryFoodHistoryRepository,
    quota_tracker: QuotaTracker,
    analysis_orchestrator: AnalysisOrchestrator,
    save_orchestrator: SaveOrchestrator,
    nutrition_aggregator: NutritionAggregator,
    tag_resolver: TagResolver,
    news_client: FakeNewsClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        quota_tracker=quota_tracker,
        analysis_orchestrator=analysis_orchestrator,
        save_orchestrator=save_orchestrator,
        nutrition_aggregator=nutrition_aggregator,
        catalog_service=FoodCatalogService(
            repository=food_repository,
            history_repository=history_repository,
            tag_resolver=tag_resolver,
        ),
        recommendation_service=RecommendationService(
            consumption_repository=history_repository,
            candidate_repository=food_repository,
            engine=TagAffinityEngine(),
        ),
        news_service=NewsService(
            client=news_client, cache=InMemoryCache(), retry_delay_seconds=0.0
        ),
        close_resources=close_resources,
    )
