"""Web manifest and head tags built from the catalog."""
from assets.manifest import build_html_tags, build_manifest, manifest_icon_entries, splash_media_query
from assets.planner import catalog, icon_spec, splash_spec


def test_manifest_skips_favicon_sizes():
    manifest = build_manifest(
        catalog(),
        name="Acme Rewards",
        short_name="Acme",
        description="Stamps",
        background_color="#ffffff",
        theme_color="#1e3a5f",
    )
    sizes = [(i["sizes"], i["purpose"]) for i in manifest["icons"]]
    assert ("16x16", "any") not in sizes
    assert ("32x32", "any") not in sizes
    assert ("192x192", "any") in sizes
    assert ("512x512", "maskable") in sizes
    assert len(manifest["icons"]) == 13
    assert manifest["display"] == "standalone"
    assert manifest["theme_color"] == "#1e3a5f"
    assert {"src": "/icons/maskable-icon-192x192.png", "sizes": "192x192", "type": "image/png", "purpose": "maskable"} in manifest["icons"]


def test_icon_entries_ignore_splash_specs():
    entries = manifest_icon_entries([icon_spec(48), splash_spec(750, 1334)], lambda s: f"/x/{s.key}")
    assert entries == [{"src": "/x/48x48", "sizes": "48x48", "type": "image/png", "purpose": "any"}]


def test_splash_media_query_portrait_and_landscape():
    assert splash_media_query(splash_spec(1170, 2532)) == (
        "(device-width: 390px) and (device-height: 844px) "
        "and (-webkit-device-pixel-ratio: 3) and (orientation: portrait)"
    )
    assert splash_media_query(splash_spec(2048, 1536)).endswith("(-webkit-device-pixel-ratio: 2) and (orientation: landscape)")
    assert "(device-width: 768px) and (device-height: 1024px)" in splash_media_query(splash_spec(2048, 1536))


def test_html_tags():
    tags = build_html_tags(catalog(), short_name='Bob "&" Co', theme_color="#000000")
    assert tags["apple_touch_icon"] == '<link rel="apple-touch-icon" sizes="180x180" href="/icons/icon-180x180.png">'
    assert "Bob &quot;&amp;&quot; Co" in tags["apple_mobile_web_app_title"]
    assert tags["favicon_32"].endswith('href="/icons/icon-32x32.png">')
    splash_lines = tags["ios_splash_screens"].split("\n")
    assert len(splash_lines) == 33
    assert splash_lines[0].startswith('<link rel="apple-touch-startup-image" href="/splash/apple-splash-640-1136.jpg"')


def test_html_tags_without_splash():
    tags = build_html_tags(catalog(include_splash=False), short_name="A", theme_color="#fff")
    assert tags["ios_splash_screens"] == ""
