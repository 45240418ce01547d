"""Generate/delete orchestration against a fake bucket."""
from io import BytesIO

import pytest
from PIL import Image

from assets.errors import SourceFetchError
from assets.planner import plan_deletion, plan_generation
from assets.synchronizer import AssetSynchronizer
from models_branding import ArtifactState

ORG = "org_1"


def _raise_fetch(url):
    raise SourceFetchError(f"unreachable: {url}")


def _pixel(data: bytes, xy):
    img = Image.open(BytesIO(data))
    img.load()
    return img.convert("RGBA").getpixel(xy)


# ---- generate ----

def test_generate_full_catalog_without_logo(s3, store):
    sync = AssetSynchronizer(store, max_workers=4)
    result = sync.generate(ORG, primary_color="#3b82f6")

    assert result.success is True
    assert result.logo_used is False
    assert len(result.icon_urls) == 15
    assert len(result.splash_urls) == 33
    assert result.icon_urls["192x192"] == "https://cdn.test/organizations/org_1/icons/icon-192x192.png"
    assert result.icon_urls["maskable-512x512"] == "https://cdn.test/organizations/org_1/icons/maskable-icon-512x512.png"
    assert result.splash_urls["1170-2532"] == "https://cdn.test/organizations/org_1/splash/apple-splash-1170-2532.jpg"
    assert set(s3.objects) == set(plan_deletion(ORG))
    assert all(o.state == ArtifactState.uploaded for o in result.outcomes)
    assert [o.storage_path for o in result.outcomes] == [p for _, p in plan_generation(ORG)]
    icon = s3.objects["organizations/org_1/icons/icon-64x64.png"]
    assert icon["ContentType"] == "image/png"
    assert _pixel(icon["Body"], (0, 0)) == (59, 130, 246, 255)
    assert s3.objects["organizations/org_1/splash/apple-splash-750-1334.jpg"]["ContentType"] == "image/jpeg"


def test_generate_uses_uploaded_bytes_over_url(s3, store, logo_png, small_catalog):
    sync = AssetSynchronizer(store, fetcher=_raise_fetch)
    result = sync.generate(ORG, logo_url="https://cdn.test/never-fetched.png", logo_bytes=logo_png)
    assert result.success is True
    assert result.logo_used is True
    assert _pixel(s3.objects["organizations/org_1/icons/icon-192x192.png"]["Body"], (0, 0)) == (255, 255, 255, 255)


def test_generate_fetches_logo_from_url(s3, store, store_fetcher, logo_png, small_catalog):
    store.put_bytes("organizations/org_1/logo/logo-abc.png", logo_png, "image/png")
    sync = AssetSynchronizer(store, fetcher=store_fetcher)
    result = sync.generate(ORG, logo_url="https://cdn.test/organizations/org_1/logo/logo-abc.png")
    assert result.success is True
    assert result.logo_used is True


def test_unreachable_logo_falls_back_to_solid_color(s3, store, small_catalog):
    sync = AssetSynchronizer(store, fetcher=_raise_fetch)
    result = sync.generate(ORG, logo_url="https://example.com/gone.png", primary_color="#112233")
    assert result.success is True
    assert result.logo_used is False
    assert len(result.icon_urls) == 15
    assert _pixel(s3.objects["organizations/org_1/icons/icon-48x48.png"]["Body"], (24, 24)) == (17, 34, 51, 255)


def test_undecodable_fetched_logo_falls_back_to_solid_color(s3, store, small_catalog):
    sync = AssetSynchronizer(store, fetcher=lambda url: b"<html>not an image</html>")
    result = sync.generate(ORG, logo_url="https://cdn.example.com/logo.png", primary_color="#112233")
    assert result.success is True
    assert result.logo_used is False
    assert not any(o.fallback for o in result.outcomes)
    assert len(s3.objects) == len(small_catalog)
    assert _pixel(s3.objects["organizations/org_1/icons/icon-192x192.png"]["Body"], (0, 0)) == (17, 34, 51, 255)


def test_generate_twice_overwrites_same_keys(s3, store, logo_png, small_catalog):
    sync = AssetSynchronizer(store)
    first = sync.generate(ORG, logo_bytes=logo_png)
    snapshot = {k: v["Body"] for k, v in s3.objects.items()}
    second = sync.generate(ORG, logo_bytes=logo_png)
    assert first.icon_urls == second.icon_urls
    assert first.splash_urls == second.splash_urls
    assert {k: v["Body"] for k, v in s3.objects.items()} == snapshot
    assert s3.put_count == 2 * len(small_catalog)


def test_invalid_color_uploads_nothing(s3, store):
    result = AssetSynchronizer(store).generate(ORG, primary_color="purple-ish")
    assert result.success is False
    assert "colour" in result.error
    assert s3.objects == {}


def test_invalid_org_id_uploads_nothing(s3, store):
    result = AssetSynchronizer(store).generate("../other-org")
    assert result.success is False
    assert s3.objects == {}


def test_strict_mode_stops_on_upload_failure(s3, store, small_catalog):
    s3.fail_put.add("organizations/org_1/icons/icon-96x96.png")
    sync = AssetSynchronizer(store, max_workers=1, partial_failure_allowed=False)
    result = sync.generate(ORG)
    assert result.success is False
    assert "icon-96x96.png" in result.error
    assert result.icon_urls == {}
    assert result.splash_urls == {}
    failed = [o for o in result.outcomes if o.state == ArtifactState.failed]
    assert [o.key for o in failed] == ["96x96"]


def test_partial_mode_reports_each_failure(s3, store, small_catalog):
    s3.fail_put.update({
        "organizations/org_1/icons/icon-96x96.png",
        "organizations/org_1/splash/apple-splash-1334-750.jpg",
    })
    sync = AssetSynchronizer(store, partial_failure_allowed=True)
    result = sync.generate(ORG)
    assert result.success is False
    assert result.error == f"2 of {len(small_catalog)} artifacts failed"
    assert "96x96" not in result.icon_urls
    assert "1334-750" not in result.splash_urls
    assert len(result.icon_urls) == 14
    assert len(result.splash_urls) == 2
    assert len(s3.objects) == len(small_catalog) - 2


def test_partial_mode_renders_fallback_for_corrupt_logo(s3, store, small_catalog):
    sync = AssetSynchronizer(store, partial_failure_allowed=True)
    result = sync.generate(ORG, primary_color="#112233", logo_bytes=b"not an image")
    assert result.success is True
    assert all(o.fallback for o in result.outcomes)
    assert _pixel(s3.objects["organizations/org_1/icons/icon-48x48.png"]["Body"], (0, 0)) == (17, 34, 51, 255)


def test_strict_mode_fails_on_corrupt_logo(s3, store, small_catalog):
    result = AssetSynchronizer(store).generate(ORG, logo_bytes=b"not an image")
    assert result.success is False
    assert "decoded" in result.error


# ---- delete ----

def test_delete_after_generate_leaves_nothing(s3, store, small_catalog):
    sync = AssetSynchronizer(store)
    assert sync.generate(ORG).success
    store.put_bytes("organizations/other/icons/icon-16x16.png", b"x", "image/png")

    result = sync.delete(ORG)
    assert result.success is True
    assert result.deleted_icons == 15
    assert result.deleted_splash_screens == 3
    assert result.failed == []
    assert list(s3.objects) == ["organizations/other/icons/icon-16x16.png"]


def test_delete_on_empty_store_succeeds(s3, store):
    result = AssetSynchronizer(store).delete(ORG)
    assert result.success is True
    assert result.deleted_icons == 15
    assert result.deleted_splash_screens == 33


def test_delete_continues_past_failures(s3, store, small_catalog):
    sync = AssetSynchronizer(store)
    sync.generate(ORG)
    stuck = "organizations/org_1/splash/apple-splash-750-1334.jpg"
    s3.fail_delete.add(stuck)

    result = sync.delete(ORG)
    assert result.success is True
    assert result.failed == [stuck]
    assert result.deleted_icons == 15
    assert result.deleted_splash_screens == 2
    assert list(s3.objects) == [stuck]


def test_delete_records_per_path_outcomes(s3, store, small_catalog):
    stuck = "organizations/org_1/icons/icon-16x16.png"
    s3.fail_delete.add(stuck)
    result = AssetSynchronizer(store).delete(ORG)
    assert [o.storage_path for o in result.outcomes] == plan_deletion(ORG)
    states = {o.storage_path: o.state for o in result.outcomes}
    assert states[stuck] == ArtifactState.removal_failed
    assert list(states.values()).count(ArtifactState.removed) == len(small_catalog) - 1


def test_delete_survives_unexpected_client_errors(s3, store, small_catalog, monkeypatch):
    broken = "organizations/org_1/splash/apple-splash-1170-2532.jpg"
    original = s3.delete_object

    def delete_object(Bucket, Key):
        if Key == broken:
            raise RuntimeError("connection reset")
        return original(Bucket=Bucket, Key=Key)
    monkeypatch.setattr(s3, "delete_object", delete_object)

    result = AssetSynchronizer(store).delete(ORG)
    assert result.success is True
    assert result.failed == [broken]
    assert result.deleted_splash_screens == 2
    failed = [o for o in result.outcomes if o.state == ArtifactState.removal_failed]
    assert [o.error for o in failed] == ["connection reset"]


def test_delete_invalid_org_id(store):
    result = AssetSynchronizer(store).delete("")
    assert result.success is False
    assert result.error


# ---- helpers ----

def test_public_urls_follow_catalog(store, small_catalog):
    icons, splash = AssetSynchronizer(store).public_urls(ORG)
    assert len(icons) == 15
    assert splash["750-1334"] == "https://cdn.test/organizations/org_1/splash/apple-splash-750-1334.jpg"


def test_key_for_url_inverts_public_url(store):
    key = "organizations/org_1/logo/logo-abc.png"
    assert store.key_for_url(store.public_url(key)) == key
    assert store.key_for_url("https://elsewhere.test/organizations/org_1/logo/logo-abc.png") is None
    assert store.key_for_url(None) is None


def test_render_catalog_icons_only(logo_png):
    rendered = AssetSynchronizer(store=None).render_catalog(logo_png, "#ffffff", include_splash=False)
    assert len(rendered) == 15
    assert all(spec.content_type == "image/png" for spec, _ in rendered)


@pytest.mark.parametrize("partial", [False, True])
def test_render_catalog_raises_for_corrupt_logo(partial):
    from assets.errors import SynthesisError
    with pytest.raises(SynthesisError):
        AssetSynchronizer(store=None, partial_failure_allowed=partial).render_catalog(b"junk", "#ffffff", False)
