"""Tests for the content tree writer/loader and the end-to-end migration."""

import json

import httpx
import pytest
import respx

from sitemigrate.errors import FetchError
from sitemigrate.models.content import ContentSection, PageContent
from sitemigrate.models.scraped import PageMetadata, ScrapedPage
from sitemigrate.services.cache import CachedContentLoader, ContentCache
from sitemigrate.services.content_store import ContentLoader, ContentStore, layout_for
from sitemigrate.services.pipeline import migrate_site
from sitemigrate.services.scraper import PageScraper

BASE = "https://example.com"


def _scraped(path: str, category=None) -> ScrapedPage:
    return ScrapedPage(
        url=f"{BASE}{path}",
        title="T",
        description="D",
        raw_body_markup="",
        sections=[],
        assets=[],
        metadata=PageMetadata(title="T", description="D", category=category),
    )


def _page(slug: str, title: str = "Title", sections: int = 1) -> PageContent:
    return PageContent(
        slug=slug,
        title=title,
        description="Desc",
        sections=[
            ContentSection(id=f"s{i}", type="content", data={"html": "<p>x</p>"})
            for i in range(sections)
        ],
    )


@pytest.fixture
def written(tmp_path):
    scraped = [
        _scraped("/", "homepage"),
        _scraped("/blog/first-post", "blog"),
        _scraped("/customers/acme"),
        _scraped("/pricing", "main-page"),
    ]
    pages = [_page("home"), _page("blog-first-post", sections=3), _page("customers-acme"), _page("pricing")]
    counts = ContentStore(tmp_path).write(scraped, pages)
    return tmp_path, counts


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

class TestLayout:
    @pytest.mark.parametrize(
        "category, expected",
        [
            ("blog", ("blog", "blog")),
            ("product", ("products", "product")),
            ("customer-story", ("customers", "customer")),
            ("solution", ("solutions", "solution")),
            ("homepage", ("pages", "main")),
            ("legal", ("pages", "main")),
        ],
    )
    def test_layout_for(self, category, expected):
        assert layout_for(category) == expected


class TestContentStore:
    def test_counts(self, written):
        _, counts = written
        assert counts == {"main": 2, "blog": 1, "product": 0, "customer": 1, "solution": 0}

    def test_page_files(self, written):
        root, _ = written
        stored = json.loads((root / "blog" / "blog-first-post.json").read_text())
        assert stored["category"] == "blog"
        assert stored["original_url"] == f"{BASE}/blog/first-post"
        assert len(stored["sections"]) == 3
        # Category falls back to the URL when the scrape did not record one
        assert json.loads((root / "customers" / "customers-acme.json").read_text())["category"] == (
            "customer-story"
        )

    def test_indexes_only_for_non_empty_keys(self, written):
        root, _ = written
        index = json.loads((root / "main-index.json").read_text())
        assert index["totalPages"] == 2
        assert [p["slug"] for p in index["pages"]] == ["home", "pricing"]
        assert index["pages"][0]["originalUrl"] == f"{BASE}/"
        assert not (root / "product-index.json").exists()
        # Empty category directories still exist
        assert (root / "products").is_dir()

    def test_sitemap_and_summary(self, written):
        root, _ = written
        site_map = json.loads((root / "sitemap.json").read_text())
        assert site_map["totalPages"] == 4
        assert site_map["categoryCounts"]["blog"] == 1

        summary = json.loads((root / "transformation-summary.json").read_text())
        assert summary["totalSections"] == 6
        assert summary["averageSectionsPerPage"] == 2
        assert summary["sectionTypes"] == ["content"]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestContentLoader:
    @pytest.fixture
    def loader(self, written):
        root, _ = written
        return ContentLoader(root, CachedContentLoader(ContentCache(default_ttl=60)))

    async def test_get_page(self, loader):
        page = await loader.get_page("blog-first-post")
        assert page.category == "blog"
        assert await loader.get_page("missing") is None

    async def test_get_pages_by_category(self, loader):
        pages = await loader.get_pages_by_category("main")
        assert sorted(page.slug for page in pages) == ["home", "pricing"]
        assert await loader.get_pages_by_category("unknown") == []

    async def test_get_all_pages(self, loader):
        assert len(await loader.get_all_pages()) == 4

    async def test_reads_are_cached_until_invalidated(self, loader, written):
        root, _ = written
        await loader.get_page("home")
        (root / "pages" / "home.json").unlink()

        assert (await loader.get_page("home")).slug == "home"
        loader.invalidate("page:home")
        assert await loader.get_page("home") is None

    async def test_unreadable_file_is_skipped(self, loader, written):
        root, _ = written
        (root / "blog" / "broken.json").write_text("{}")
        pages = await loader.get_pages_by_category("blog")
        assert [page.slug for page in pages] == ["blog-first-post"]


# ---------------------------------------------------------------------------
# End-to-end migration
# ---------------------------------------------------------------------------

SITEMAP_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>{BASE}/</loc></url>
  <url><loc>{BASE}/pricing</loc></url>
  <url><loc>{BASE}/blog/hello</loc></url>
  <url><loc>{BASE}/legal/terms</loc></url>
</urlset>
"""

HOME_HTML = """
<html><head><title>Home</title><meta name="description" content="Welcome home"></head>
<body><div class="hero" style="background-color: #fff"><h1>Welcome</h1><p>Get started</p></div></body></html>
"""

POST_HTML = """
<html><head><title>Hello</title></head>
<body><section class="post"><p>Hello world</p></section></body></html>
"""


class TestMigrateSite:
    @respx.mock
    async def test_full_run(self, tmp_path):
        respx.get(f"{BASE}/sitemap.xml").mock(return_value=httpx.Response(200, text=SITEMAP_XML))
        respx.get(f"{BASE}/").mock(return_value=httpx.Response(200, text=HOME_HTML))
        respx.get(f"{BASE}/pricing").mock(return_value=httpx.Response(500))
        respx.get(f"{BASE}/blog/hello").mock(return_value=httpx.Response(200, text=POST_HTML))

        result = await migrate_site(
            sitemap_url=f"{BASE}/sitemap.xml",
            content_dir=tmp_path / "content",
            scraped_data_dir=tmp_path / "scraped",
            scraper=PageScraper(BASE, crawl_delay=0),
        )

        assert [page.slug for page in result.pages] == ["home", "blog-hello"]
        assert result.failed_urls == [f"{BASE}/pricing"]
        assert result.category_counts["main"] == 1
        assert result.category_counts["blog"] == 1
        assert result.pages[0].sections[0].data["hero"]["title"] == "Welcome"

        # The blog post has no description, which is only a warning
        assert result.report.summary.pages_with_warnings == 1
        assert result.publishable is True

        assert (tmp_path / "content" / "pages" / "home.json").exists()
        assert (tmp_path / "content" / "blog" / "blog-hello.json").exists()
        assert len(json.loads((tmp_path / "scraped" / "pages.json").read_text())) == 2
        assert (tmp_path / "scraped" / "sitemap-analysis.json").exists()

        assert result.design_tokens.colors == {"white": "#fff"}
        tokens = json.loads((tmp_path / "scraped" / "design-tokens.json").read_text())
        assert tokens["colors"] == {"white": "#fff"}

    @respx.mock
    async def test_sitemap_failure_propagates(self, tmp_path):
        respx.get(f"{BASE}/sitemap.xml").mock(return_value=httpx.Response(404))
        with pytest.raises(FetchError):
            await migrate_site(
                sitemap_url=f"{BASE}/sitemap.xml",
                content_dir=tmp_path,
                scraper=PageScraper(BASE, crawl_delay=0),
            )
