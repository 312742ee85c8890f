"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import ClientOptions, create_client

from nutriscan.adapters.news_client import HttpxNewsClient
from nutriscan.adapters.openai_analysis_client import OpenAIAnalysisClient
from nutriscan.adapters.supabase_food_history_repository import (
    SupabaseFoodHistoryRepository,
)
from nutriscan.adapters.supabase_food_repository import SupabaseFoodRepository
from nutriscan.adapters.supabase_scan_history_repository import (
    SupabaseScanHistoryRepository,
)
from nutriscan.adapters.supabase_storage_client import SupabaseStorageClient
from nutriscan.adapters.supabase_user_repository import SupabaseUserRepository
from nutriscan.config import Settings
from nutriscan.services.analysis import AnalysisOrchestrator, AnalysisService
from nutriscan.services.cache import InMemoryCache
from nutriscan.services.catalog import FoodCatalogService
from nutriscan.services.news import NewsService
from nutriscan.services.quota import QuotaTracker
from nutriscan.services.recommendations import (
    RecommendationService,
    TagAffinityEngine,
)
from nutriscan.services.saving import SaveOrchestrator
from nutriscan.services.summary import NutritionAggregator, TagResolver


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    quota_tracker: QuotaTracker
    analysis_orchestrator: AnalysisOrchestrator
    save_orchestrator: SaveOrchestrator
    nutrition_aggregator: NutritionAggregator
    catalog_service: FoodCatalogService
    recommendation_service: RecommendationService
    news_service: NewsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url,
        resolved_settings.supabase_service_key,
        options=ClientOptions(
            postgrest_client_timeout=resolved_settings.database_timeout_seconds,
            storage_client_timeout=int(resolved_settings.storage_timeout_seconds),
        ),
    )
    food_repository = SupabaseFoodRepository(supabase_client)
    history_repository = SupabaseFoodHistoryRepository(supabase_client)
    scan_repository = SupabaseScanHistoryRepository(supabase_client)
    user_repository = SupabaseUserRepository(supabase_client)
    storage_client = SupabaseStorageClient(supabase_client)

    quota_tracker = QuotaTracker(
        repository=scan_repository,
        daily_allowance=resolved_settings.daily_scan_allowance,
        timezone_name=resolved_settings.reference_timezone,
    )
    analysis_client = OpenAIAnalysisClient.create(
        resolved_settings.openai_api_key,
        timeout=resolved_settings.analysis_timeout_seconds,
    )
    analysis_service = AnalysisService(
        client=analysis_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    analysis_orchestrator = AnalysisOrchestrator(
        quota_tracker=quota_tracker,
        analysis_service=analysis_service,
        scan_repository=scan_repository,
        timeout_seconds=resolved_settings.analysis_timeout_seconds,
        serialize_per_user=resolved_settings.strict_scan_quota,
    )
    save_orchestrator = SaveOrchestrator(
        food_repository=food_repository,
        history_repository=history_repository,
        storage_client=storage_client,
        bucket=resolved_settings.storage_bucket,
        upload_timeout_seconds=resolved_settings.storage_timeout_seconds,
    )
    tag_resolver = TagResolver(
        repository=food_repository,
        cache=InMemoryCache(max_entries=4096),
        ttl_seconds=resolved_settings.tag_cache_ttl_seconds,
    )
    nutrition_aggregator = NutritionAggregator(
        consumption_repository=history_repository,
        user_repository=user_repository,
        tag_resolver=tag_resolver,
        timezone_name=resolved_settings.reference_timezone,
    )
    catalog_service = FoodCatalogService(
        repository=food_repository,
        history_repository=history_repository,
        tag_resolver=tag_resolver,
    )
    recommendation_service = RecommendationService(
        consumption_repository=history_repository,
        candidate_repository=food_repository,
        engine=TagAffinityEngine(),
    )
    news_client = HttpxNewsClient.create(resolved_settings.news_feed_url)
    news_service = NewsService(
        client=news_client,
        cache=InMemoryCache(max_entries=8),
        ttl_seconds=resolved_settings.news_ttl_seconds,
    )

    async def close_resources() -> None:
        await news_client.close()
        await analysis_client.client.close()

    return AppContainer(
        settings=resolved_settings,
        quota_tracker=quota_tracker,
        analysis_orchestrator=analysis_orchestrator,
        save_orchestrator=save_orchestrator,
        nutrition_aggregator=nutrition_aggregator,
        catalog_service=catalog_service,
        recommendation_service=recommendation_service,
        news_service=news_service,
        close_resources=close_resources,
    )
