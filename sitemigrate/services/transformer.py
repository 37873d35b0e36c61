"""Converts scraped pages into the canonical content model."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from sitemigrate.models.content import ContentSection, PageContent, SectionStyling, SectionType
from sitemigrate.models.scraped import ScrapedPage, ScrapedSection
from sitemigrate.services.normalizer import slug_from_url

# Scraped section type -> canonical section type; anything else is "custom"
SECTION_TYPE_MAP: Dict[str, SectionType] = {
    "hero": "hero",
    "banner": "hero",
    "gallery": "gallery",
    "image": "gallery",
    "contact": "contact",
    "form": "contact",
    "content": "content",
    "about": "content",
    "features": "content",
    "testimonial": "content",
}

# Inline style property -> SectionStyling attribute
_STYLE_FIELDS = (
    ("background-color", "background_color"),
    ("color", "text_color"),
    ("padding", "padding"),
    ("margin", "margin"),
)

_HEADING_RE = re.compile(r"^h[1-6]$")
_MAX_NAV_ITEMS = 6


def map_section_type(inferred_type: str) -> SectionType:
    return SECTION_TYPE_MAP.get(inferred_type, "custom")


def _is_button(anchor) -> bool:
    return any("btn" in cls or "button" in cls for cls in anchor.get("class") or [])


class ContentTransformer:
    """Pure ``ScrapedPage -> PageContent`` conversion; holds no state."""

    def transform_page(self, page: ScrapedPage) -> PageContent:
        metadata = page.metadata
        return PageContent(
            slug=slug_from_url(page.url),
            title=page.title,
            description=page.description,
            seo_title=metadata.og_title or page.title,
            seo_description=metadata.og_description or page.description,
            open_graph_image=metadata.og_image,
            sections=[self.transform_section(section) for section in page.sections],
        )

    def transform_all(self, pages: List[ScrapedPage]) -> List[PageContent]:
        return [self.transform_page(page) for page in pages]

    def transform_section(self, section: ScrapedSection) -> ContentSection:
        return ContentSection(
            id=section.id,
            type=map_section_type(section.inferred_type),
            data=self._extract_section_data(section),
            styling=self._transform_styling(section),
        )

    # ------------------------------------------------------------------
    # Section payloads
    # ------------------------------------------------------------------

    def _extract_section_data(self, section: ScrapedSection) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "html": section.inner_markup,
            "text": section.text,
            "original_classes": list(section.css_classes),
        }
        soup = BeautifulSoup(section.inner_markup, "lxml")

        if section.inferred_type == "hero":
            data["hero"] = self._extract_hero(soup)
        elif section.inferred_type == "contact":
            data["form"] = self._extract_form(soup)
        elif section.inferred_type == "gallery":
            data["images"] = self._extract_images(soup)
        else:
            data["content"] = {
                "html": section.inner_markup,
                "text": section.text,
                "has_children": bool(section.children),
                "children": [
                    self.transform_section(child).model_dump() for child in section.children
                ],
            }
        return data

    def _extract_hero(self, soup: BeautifulSoup) -> Dict[str, Any]:
        hero: Dict[str, Any] = {}

        heading = soup.find(_HEADING_RE)
        if heading:
            hero["title"] = heading.get_text(strip=True)

        paragraph = soup.find("p")
        if paragraph:
            hero["description"] = paragraph.get_text(strip=True)

        buttons = [
            {"text": anchor.get_text(strip=True), "href": str(anchor.get("href") or "#")}
            for anchor in soup.find_all("a")
            if _is_button(anchor)
        ]
        if buttons:
            hero["buttons"] = buttons

        return hero

    def _extract_form(self, soup: BeautifulSoup) -> Dict[str, Any]:
        fields = [
            {
                "type": str(field.get("type") or "text"),
                "name": str(field.get("name") or ""),
                "placeholder": str(field.get("placeholder") or ""),
            }
            for field in soup.find_all("input")
        ]
        fields.extend(
            {
                "type": "textarea",
                "name": str(field.get("name") or ""),
                "placeholder": str(field.get("placeholder") or ""),
            }
            for field in soup.find_all("textarea")
        )
        return {"fields": fields}

    def _extract_images(self, soup: BeautifulSoup) -> List[Dict[str, str]]:
        return [
            {"src": str(img.get("src") or ""), "alt": str(img.get("alt") or "")}
            for img in soup.find_all("img")
        ]

    def _transform_styling(self, section: ScrapedSection) -> SectionStyling:
        styling = SectionStyling(custom_classes=list(section.css_classes))
        for css_property, attribute in _STYLE_FIELDS:
            value = section.inline_styles.get(css_property)
            if value:
                setattr(styling, attribute, value)
        return styling

    # ------------------------------------------------------------------
    # Site map
    # ------------------------------------------------------------------

    def generate_site_map(self, pages: List[PageContent]) -> Dict[str, Any]:
        return {
            "pages": [
                {
                    "slug": page.slug,
                    "title": page.title,
                    "description": page.description,
                    "sections": len(page.sections),
                }
                for page in pages
            ],
            "navigation": [
                {"label": page.title, "href": f"/{page.slug}"}
                for page in pages
                if page.slug != "home"
            ][:_MAX_NAV_ITEMS],
            "totalPages": len(pages),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }
