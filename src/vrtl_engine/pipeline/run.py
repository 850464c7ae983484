import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_incrementing

from ..config import get_settings
from ..errors import ClientNotFound, NoProvidersEnabled, SnapshotRateLimited
from ..llm.parse import parse_response
from ..llm.prompts import build_user_prompt, load_prompt_pack
from ..llm.providers.base import AdapterResult, Provider, ProviderAdapter, ProviderError
from ..llm.registry import build_adapters, enabled_providers, execution_providers, provider_concurrency
from ..mlops.tracing import tracer
from ..pipeline.recovery import reset_stale
from ..schemas.extraction import ExtractionRecord, Invalid, NoCandidate, Parsed
from ..schemas.snapshot import Client, ParseStatus, PromptDefinition, PromptPack, ProviderResponse, Snapshot
from ..scoring.balanced import score_snapshot
from ..store.repo import Repo, utc_now_iso

logger = logging.getLogger("pipeline")
settings = get_settings()


def _submit(pool: ThreadPoolExecutor, fn, *args):
    # Pool threads start with an empty context; carry the active trace span into the worker
    return pool.submit(contextvars.copy_context().run, fn, *args)


class SnapshotOrchestrator:
    """
    Runs one visibility snapshot for a client: every prompt of the active pack
    against every execution provider, one persisted response per call, then a
    single scoring pass once all providers have finished.

    `adapters` overrides registry resolution (used by tests and scripts that
    want a specific provider set).
    """

    def __init__(self, adapters: Optional[Dict[Provider, ProviderAdapter]] = None):
        self.adapters = adapters

    def start_run(self, client_id: str) -> str:
        client = Repo.get_client(client_id)
        if not client:
            raise ClientNotFound(client_id)

        self._check_guardrails(client)
        reset_stale(client_id)

        pack = load_prompt_pack(settings.PROMPT_PACK)
        # Raises SnapshotAlreadyRunning; nothing to clean up yet
        snapshot = Repo.create_snapshot(client.id, client.agency_id, pack.version)
        logger.info(f"Created snapshot {snapshot.id} for client {client.id} (pack {pack.version})")

        with tracer.span(
            "snapshot.run",
            span_type="CHAIN",
            attributes={"snapshot_id": snapshot.id, "client_id": client.id, "prompt_pack_version": pack.version},
        ):
            try:
                competitor_names = Repo.get_competitor_names(client.id)
                adapters = self._resolve_adapters()

                logger.info(f"Snapshot {snapshot.id}: providers {[p.value for p in adapters]}")
                records_by_provider = self._run_providers(snapshot, client, competitor_names, pack, adapters)

                score = score_snapshot(records_by_provider)
                tracer.trace_scoring(score.overall_score, score.score_by_provider)
                finalized = Repo.complete_snapshot(
                    snapshot.id, score.overall_score, score.score_by_provider, score.score_breakdown
                )
                if finalized:
                    logger.info(
                        f"Snapshot {snapshot.id} complete: overall={score.overall_score} "
                        f"by_provider={score.score_by_provider}"
                    )
                else:
                    logger.warning(f"Snapshot {snapshot.id} was no longer running; scores not written")

            except NoProvidersEnabled as e:
                logger.error(f"Snapshot {snapshot.id} aborted: {e}")
                Repo.fail_snapshot(snapshot.id, str(e))
            except Exception as e:
                logger.exception(f"Snapshot {snapshot.id} error")
                Repo.fail_snapshot(snapshot.id, str(e))

        return snapshot.id

    # ------------------------------------------------------------------

    def _check_guardrails(self, client: Client, now: Optional[datetime] = None):
        now = now or datetime.now(timezone.utc)

        cooldown = settings.SNAPSHOT_CLIENT_COOLDOWN_SECONDS
        if cooldown > 0:
            latest = Repo.latest_snapshot_started_at(client.id)
            if latest:
                age = (now - datetime.fromisoformat(latest)).total_seconds()
                if 0 <= age < cooldown:
                    raise SnapshotRateLimited(
                        f"Snapshot cooldown active for client {client.id}",
                        retry_after_seconds=cooldown - age,
                    )

        limit = settings.SNAPSHOT_DAILY_LIMIT
        if limit is not None:
            since = (now - timedelta(hours=24)).isoformat(timespec="microseconds")
            used = Repo.count_agency_snapshots_since(client.agency_id, since)
            if used >= limit:
                raise SnapshotRateLimited(f"Daily snapshot limit reached for agency {client.agency_id} ({used}/{limit})")

    def _resolve_adapters(self) -> Dict[Provider, ProviderAdapter]:
        if self.adapters is not None:
            if not self.adapters:
                raise NoProvidersEnabled("no providers enabled (no adapters supplied)")
            return dict(self.adapters)

        enabled = enabled_providers(settings)
        if not enabled:
            raise NoProvidersEnabled("no providers enabled (set OPENAI_API_KEY, ANTHROPIC_API_KEY or GEMINI_API_KEY)")

        providers = execution_providers(settings)
        if not providers:
            raise NoProvidersEnabled(
                f"no providers enabled (RUN_PROVIDERS={settings.RUN_PROVIDERS!r} "
                f"matches none of {[p.value for p in enabled]})"
            )
        return build_adapters(providers, settings)

    def _run_providers(
        self,
        snapshot: Snapshot,
        client: Client,
        competitor_names: List[str],
        pack: PromptPack,
        adapters: Dict[Provider, ProviderAdapter],
    ) -> Dict[Provider, List[ExtractionRecord]]:
        # One task per provider; leaving the pool is the barrier before scoring
        with ThreadPoolExecutor(max_workers=len(adapters), thread_name_prefix="provider") as pool:
            futures = {
                provider: _submit(pool, self._run_provider, snapshot, client, competitor_names, pack, provider, adapter)
                for provider, adapter in adapters.items()
            }
            return {provider: future.result() for provider, future in futures.items()}

    def _run_provider(
        self,
        snapshot: Snapshot,
        client: Client,
        competitor_names: List[str],
        pack: PromptPack,
        provider: Provider,
        adapter: ProviderAdapter,
    ) -> List[ExtractionRecord]:
        workers = provider_concurrency(provider, settings)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"{provider.value}-prompt") as pool:
            futures = [
                _submit(pool, self._run_prompt, snapshot, client, competitor_names, pack, ordinal, prompt, provider, adapter)
                for ordinal, prompt in enumerate(pack.prompts)
            ]
            records = [f.result() for f in futures]

        parsed = [r for r in records if r is not None]
        logger.info(f"Snapshot {snapshot.id}: {provider.value} parsed {len(parsed)}/{len(pack.prompts)}")
        return parsed

    def _run_prompt(
        self,
        snapshot: Snapshot,
        client: Client,
        competitor_names: List[str],
        pack: PromptPack,
        ordinal: int,
        prompt: PromptDefinition,
        provider: Provider,
        adapter: ProviderAdapter,
    ) -> Optional[ExtractionRecord]:
        user_prompt = build_user_prompt(client.name, client.industry, competitor_names, prompt)
        row = ProviderResponse(
            snapshot_id=snapshot.id,
            agency_id=snapshot.agency_id,
            provider=provider.value,
            prompt_ordinal=ordinal,
            prompt_key=prompt.key,
            prompt_text=prompt.text,
            prompt_pack_version=pack.version,
            model_used=adapter.model,
            parse_ok=False,
            parse_status=ParseStatus.ERROR,
        )

        with tracer.span("provider.call", span_type="LLM", attributes={"provider": provider.value, "prompt_key": prompt.key}):
            try:
                result = self._call_adapter(adapter, pack.system, user_prompt)
            except Exception as e:
                logger.warning(f"Snapshot {snapshot.id}: {provider.value}/{prompt.key} failed: {e}")
                row = row.model_copy(update={"error": str(e), "created_at": utc_now_iso()})
                Repo.insert_response(row)
                tracer.trace_provider_call(provider.value, adapter.model, prompt.key, ParseStatus.ERROR.value)
                return None

            record: Optional[ExtractionRecord] = None
            update = {
                "raw_text": result.raw_text,
                "model_used": result.model_used,
                "latency_ms": result.latency_ms,
                "created_at": utc_now_iso(),
            }
            match parse_response(result.raw_text):
                case Parsed(record=parsed):
                    record = parsed
                    update.update(
                        parse_ok=True,
                        parse_status=ParseStatus.PARSED,
                        extraction=parsed,
                        parsed_json=parsed.model_dump(),
                    )
                case Invalid(errors=errors):
                    update.update(parse_status=ParseStatus.INVALID, parsed_json=errors)
                case NoCandidate():
                    update.update(parse_status=ParseStatus.NO_CANDIDATE)

            row = row.model_copy(update=update)
            Repo.insert_response(row)
            tracer.trace_provider_call(
                provider.value, result.model_used, prompt.key, row.parse_status.value, result.latency_ms
            )
            if row.parse_status != ParseStatus.PARSED:
                logger.debug(f"Snapshot {snapshot.id}: {provider.value}/{prompt.key} -> {row.parse_status.value}")
            return record

    def _call_adapter(self, adapter: ProviderAdapter, system: str, user_prompt: str) -> AdapterResult:
        retryer = Retrying(
            stop=stop_after_attempt(max(1, settings.SNAPSHOT_PROVIDER_ATTEMPTS)),
            wait=wait_incrementing(start=0.25, increment=0.25),
            retry=retry_if_exception_type(ProviderError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retryer(adapter.run, system, user_prompt)


orchestrator = SnapshotOrchestrator()
