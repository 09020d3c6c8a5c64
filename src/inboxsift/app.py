"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from inboxsift.ai import AiProvider, AiProviderFactory, ExtractionClient
from inboxsift.config import AppConfig
from inboxsift.jobs import ExtractionJob, ExtractionJobRunner
from inboxsift.services import (
    ExtractionService,
    InboxService,
    SuggestionService,
    WorkspaceService,
)
from inboxsift.storage.sqlite_store import SqliteStore, StoredExtraction, StoredWorkspace


@dataclass(frozen=True)
class AppContext:
    """Summary: Shared application context for building workspace services.

    Importance: Reuses storage and the extraction client across workspaces.
    Alternatives: Rebuild dependencies for every request.
    """

    store: SqliteStore
    client: ExtractionClient
    config: AppConfig

    def services_for_workspace(self, workspace_id: int) -> "AppServices":
        """Summary: Build workspace-scoped services from shared context.

        Importance: Every operation receives its workspace explicitly.
        Alternatives: Use a multi-tenant database with row-level security.
        """

        return AppServices(
            inbox=InboxService(store=self.store, workspace_id=workspace_id),
            extraction=ExtractionService(
                store=self.store, client=self.client, workspace_id=workspace_id
            ),
            suggestions=SuggestionService(store=self.store, workspace_id=workspace_id),
            workspaces=WorkspaceService(store=self.store),
            store=self.store,
            workspace_id=workspace_id,
        )

    def run_job(self, job: ExtractionJob) -> StoredExtraction:
        """Summary: Run one extraction attempt for a queued job."""

        return self.services_for_workspace(job.workspace_id).extraction.run_extraction(
            job.inbox_item_id
        )


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of workspace-scoped services.

    Importance: Simplifies passing dependencies to UI or API layers.
    Alternatives: Use a dependency injection container.
    """

    inbox: InboxService
    extraction: ExtractionService
    suggestions: SuggestionService
    workspaces: WorkspaceService
    store: SqliteStore
    workspace_id: int


def build_context(config: AppConfig, provider: AiProvider | None = None) -> AppContext:
    """Summary: Build shared context for workspace-scoped services.

    Importance: Reuses storage and AI provider across requests.
    Alternatives: Construct dependencies separately per request.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    ai_provider = provider or AiProviderFactory(config).build()
    return AppContext(store=store, client=ExtractionClient(ai_provider), config=config)


def build_job_runner(context: AppContext, **overrides) -> ExtractionJobRunner:
    """Summary: Build the extraction job runner from configuration."""

    options = {
        "max_attempts": context.config.extraction_max_attempts,
        "backoff_seconds": context.config.extraction_backoff_seconds,
        "workers": context.config.job_workers,
    }
    options.update(overrides)
    return ExtractionJobRunner(context.run_job, **options)


def default_workspace(context: AppContext) -> StoredWorkspace:
    """Summary: Return the configured default workspace, creating it on first use.

    Importance: Gives single-workspace local setups a workspace without extra steps.
    Alternatives: Require an explicit workspace for every command.
    """

    return WorkspaceService(context.store).ensure_workspace(
        context.config.default_workspace_name,
        context.config.app_timezone,
        context.config.app_locale,
    )
