"""
Drive the synthesizer across the catalog and keep the object store in step.

generate(): fetch logo once -> plan -> render + upload each artifact on a bounded pool.
delete():   plan_deletion -> remove each path independently (best effort).

Neither raises to the caller; both return a structured result.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from assets.colors import parse_hex_color
from assets.errors import AssetError, DeleteError, SourceFetchError, SynthesisError
from assets.fetch import fetch_logo
from assets.planner import catalog, plan_deletion, plan_generation, storage_path, validate_org_id
from assets.synthesizer import decode_logo, render
from models_branding import (
    ArtifactKind,
    ArtifactOutcome,
    ArtifactSpec,
    ArtifactState,
    AssetDeletionResult,
    AssetGenerationResult,
    GeneratedArtifact,
)
from s3_client import ObjectStore

logger = logging.getLogger(__name__)

ASSET_MAX_WORKERS = int(os.environ.get("ASSET_MAX_WORKERS", "4"))
ASSET_PARTIAL_FAILURE_ALLOWED = os.environ.get("ASSET_PARTIAL_FAILURE_ALLOWED", "false").strip().lower() in (
    "1",
    "true",
    "yes",
)
DEFAULT_PRIMARY_COLOR = "#ffffff"


class AssetSynchronizer:
    def __init__(
        self,
        store: ObjectStore,
        *,
        max_workers: int = ASSET_MAX_WORKERS,
        partial_failure_allowed: bool = ASSET_PARTIAL_FAILURE_ALLOWED,
        fetcher: Callable[[str], bytes] = fetch_logo,
    ):
        self.store = store
        self.max_workers = max(1, max_workers)
        self.partial_failure_allowed = partial_failure_allowed
        self.fetcher = fetcher

    # --- generate ---

    def _load_logo(self, logo_url: Optional[str], logo_bytes: Optional[bytes]) -> Optional[bytes]:
        if logo_bytes:
            return logo_bytes
        if not logo_url:
            return None
        try:
            data = self.fetcher(logo_url)
        except SourceFetchError as e:
            logger.warning("Failed to fetch logo, using fallback rendering: %s", e)
            return None
        try:
            decode_logo(data)
        except SynthesisError as e:
            logger.warning("Fetched logo is not a readable image, using fallback rendering: %s", e)
            return None
        return data

    def _synthesize(
        self, spec: ArtifactSpec, path: str, logo: Optional[bytes], color: str
    ) -> GeneratedArtifact:
        try:
            return GeneratedArtifact(spec=spec, data=render(spec, logo, color), storage_path=path)
        except SynthesisError as e:
            if not self.partial_failure_allowed or logo is None:
                raise
            logger.warning("Rendering %s fallback for %s: %s", spec.kind.value, spec.key, e)
            return GeneratedArtifact(spec=spec, data=render(spec, None, color), storage_path=path, fallback=True)

    def _generate_one(
        self, spec: ArtifactSpec, path: str, logo: Optional[bytes], color: str
    ) -> ArtifactOutcome:
        artifact = self._synthesize(spec, path, logo, color)
        self.store.put_bytes(path, artifact.data, spec.content_type)
        logger.debug("Uploaded %s (%d bytes)", path, len(artifact.data))
        return ArtifactOutcome(
            key=spec.key,
            kind=spec.kind,
            storage_path=path,
            state=ArtifactState.uploaded,
            fallback=artifact.fallback,
        )

    def generate(
        self,
        organization_id: str,
        logo_url: Optional[str] = None,
        primary_color: Optional[str] = None,
        logo_bytes: Optional[bytes] = None,
    ) -> AssetGenerationResult:
        """Render and upload every icon and splash screen for the organization."""
        color = primary_color or DEFAULT_PRIMARY_COLOR
        try:
            org = validate_org_id(organization_id)
            parse_hex_color(color)
        except ValueError as e:
            return AssetGenerationResult(success=False, error=str(e))

        logger.info("Starting asset generation for org=%s logo=%s", org, logo_url or ("upload" if logo_bytes else None))
        logo = self._load_logo(logo_url, logo_bytes)
        plan = plan_generation(org)
        order = {path: i for i, (_, path) in enumerate(plan)}
        outcomes: list[ArtifactOutcome] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._generate_one, spec, path, logo, color): (spec, path) for spec, path in plan}
            for fut in as_completed(futures):
                spec, path = futures[fut]
                try:
                    outcomes.append(fut.result())
                except Exception as e:
                    if not isinstance(e, AssetError):
                        logger.exception("Unexpected error generating %s", path)
                    failed = ArtifactOutcome(
                        key=spec.key,
                        kind=spec.kind,
                        storage_path=path,
                        state=ArtifactState.failed,
                        error=str(e),
                    )
                    outcomes.append(failed)
                    if not self.partial_failure_allowed:
                        for pending in futures:
                            pending.cancel()
                        logger.error("Asset generation failed for org=%s at %s: %s", org, path, e)
                        return AssetGenerationResult(
                            success=False,
                            outcomes=sorted(outcomes, key=lambda o: order[o.storage_path]),
                            logo_used=logo is not None,
                            error=str(e),
                        )

        outcomes.sort(key=lambda o: order[o.storage_path])
        result = AssetGenerationResult(success=True, logo_used=logo is not None, outcomes=outcomes)
        for outcome in outcomes:
            if outcome.state != ArtifactState.uploaded:
                continue
            url = self.store.public_url(outcome.storage_path)
            if outcome.kind == ArtifactKind.icon:
                result.icon_urls[outcome.key] = url
            else:
                result.splash_urls[outcome.key] = url
        failures = [o for o in outcomes if o.state == ArtifactState.failed]
        if failures:
            result.success = False
            result.error = f"{len(failures)} of {len(outcomes)} artifacts failed"
        logger.info(
            "Generated %d icons and %d splash screens for org=%s",
            len(result.icon_urls),
            len(result.splash_urls),
            org,
        )
        return result

    # --- delete ---

    def _delete_one(self, path: str) -> None:
        self.store.delete(path)

    def delete(self, organization_id: str) -> AssetDeletionResult:
        """Remove every catalog path. Per-item failures are logged and counted, never fatal."""
        try:
            paths = plan_deletion(organization_id)
        except ValueError as e:
            return AssetDeletionResult(success=False, error=str(e))
        specs_by_path = {storage_path(organization_id, spec): spec for spec in catalog()}
        order = {path: i for i, path in enumerate(paths)}

        logger.info("Starting asset deletion for org=%s (%d paths)", organization_id, len(paths))
        result = AssetDeletionResult(success=True)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._delete_one, path): path for path in paths}
            for fut in as_completed(futures):
                path = futures[fut]
                spec = specs_by_path[path]
                try:
                    fut.result()
                except Exception as e:
                    if isinstance(e, DeleteError):
                        logger.warning("Failed to delete %s: %s", path, e)
                    else:
                        logger.exception("Unexpected error deleting %s", path)
                    result.failed.append(path)
                    result.outcomes.append(ArtifactOutcome(
                        key=spec.key,
                        kind=spec.kind,
                        storage_path=path,
                        state=ArtifactState.removal_failed,
                        error=str(e),
                    ))
                    continue
                result.outcomes.append(ArtifactOutcome(
                    key=spec.key, kind=spec.kind, storage_path=path, state=ArtifactState.removed
                ))
                if spec.kind == ArtifactKind.icon:
                    result.deleted_icons += 1
                else:
                    result.deleted_splash_screens += 1
        result.failed.sort()
        result.outcomes.sort(key=lambda o: order[o.storage_path])
        logger.info(
            "Deleted %d icons and %d splash screens for org=%s (%d failed)",
            result.deleted_icons,
            result.deleted_splash_screens,
            organization_id,
            len(result.failed),
        )
        return result

    # --- read-only helpers ---

    def public_urls(self, organization_id: str) -> tuple[dict[str, str], dict[str, str]]:
        """URLs where the catalog lives for this org; no existence check."""
        icons: dict[str, str] = {}
        splash: dict[str, str] = {}
        for spec, path in plan_generation(organization_id):
            target = icons if spec.kind == ArtifactKind.icon else splash
            target[spec.key] = self.store.public_url(path)
        return icons, splash

    def render_catalog(
        self,
        logo: bytes,
        background_color: str,
        include_splash: bool = True,
    ) -> list[tuple[ArtifactSpec, bytes]]:
        """Render without storing (admin generator). Raises on the first failure."""
        specs = catalog(include_splash=include_splash)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            rendered = list(pool.map(lambda spec: render(spec, logo, background_color), specs))
        return list(zip(specs, rendered))
