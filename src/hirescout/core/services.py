"""
Service wiring shared by the HTTP API and the CLI.

Collaborator clients are built from config on first use, so commands that
never touch a vendor do not need its credentials.
"""

from __future__ import annotations

from hirescout.core.clients.apify import ApifyCompanyProfileSource, ApifyJobSource
from hirescout.core.clients.apollo import ApolloClient
from hirescout.core.clients.base import CompanyProfileSource, ContactProvider, JobSource
from hirescout.core.config.models import AppConfig
from hirescout.core.enrichment import (
    CompanyEnrichmentPipeline,
    CompanyProfileEnricher,
    EnrichmentCacheGateway,
    PhoneWebhookHandler,
)
from hirescout.core.orchestrator import ResultIngester, RunScheduler, RunService, StaleRunReaper
from hirescout.persistence.db import SessionFactory, get_async_session


class Services:
    """Lazily built orchestrator and enrichment services."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        job_source: JobSource | None = None,
        contact_provider: ContactProvider | None = None,
        profile_source: CompanyProfileSource | None = None,
        session_factory: SessionFactory = get_async_session,
    ):
        self.config = config or AppConfig()
        self.session_factory = session_factory
        self._job_source = job_source
        self._contact_provider = contact_provider
        self._profile_source = profile_source
        self._scheduler: RunScheduler | None = None
        self._pipeline: CompanyEnrichmentPipeline | None = None
        self._gateway: EnrichmentCacheGateway | None = None

    @property
    def job_source(self) -> JobSource:
        if self._job_source is None:
            self._job_source = ApifyJobSource(self.config.apify)
        return self._job_source

    @property
    def contact_provider(self) -> ContactProvider | None:
        # Cache reads and previews work without provider credentials
        if self._contact_provider is None and self.config.apollo.api_key:
            self._contact_provider = ApolloClient(self.config.apollo, self.config.enrichment)
        return self._contact_provider

    @property
    def profile_source(self) -> CompanyProfileSource | None:
        # Profile enrichment is optional; without a token new companies stay bare
        if self._profile_source is None and self.config.apify.api_token:
            self._profile_source = ApifyCompanyProfileSource(self.config.apify)
        return self._profile_source

    @property
    def reaper(self) -> StaleRunReaper:
        return StaleRunReaper(
            self.config.orchestrator.stale_after_minutes,
            session_factory=self.session_factory,
        )

    @property
    def scheduler(self) -> RunScheduler:
        if self._scheduler is None:
            source = self.profile_source
            enricher = CompanyProfileEnricher(source) if source is not None else None
            self._scheduler = RunScheduler(
                self.job_source,
                self.config,
                ingester=ResultIngester(enricher),
                reaper=self.reaper,
                session_factory=self.session_factory,
            )
        return self._scheduler

    @property
    def runs(self) -> RunService:
        return RunService(self.reaper, session_factory=self.session_factory)

    @property
    def gateway(self) -> EnrichmentCacheGateway:
        if self._gateway is None:
            self._gateway = EnrichmentCacheGateway(self.contact_provider, self.config.enrichment)
        return self._gateway

    @property
    def pipeline(self) -> CompanyEnrichmentPipeline:
        if self._pipeline is None:
            self._pipeline = CompanyEnrichmentPipeline(
                self.gateway, self.config, session_factory=self.session_factory
            )
        return self._pipeline

    @property
    def phones(self) -> PhoneWebhookHandler:
        return PhoneWebhookHandler(session_factory=self.session_factory)

    async def close(self) -> None:
        for client in (self._job_source, self._contact_provider, self._profile_source):
            if client is not None:
                await client.close()
