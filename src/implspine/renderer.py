"""
Implementors list renderer.

Renders the "Implementors" section of one trait page from an
``ImplementorIndex`` using Jinja2 templates.

Manifesto:
    The index decides what is known; the renderer only decides how it
    looks. Markup from the generator is trusted and inserted as-is, with
    two adjustments a trait page needs: the page's own crate is skipped
    (its impls are already listed on the page), and relative links are
    re-rooted so they resolve from the page's location.

Architecture:
    ```
    ImplementorIndex.implementors(trait, exclude={current_crate})
              │
              ▼
    rewrite_links(markup, root_path)        (html only)
              │
              ▼
    implementors_template.html / implementors_template.md
              │
              ▼
    rendered list
    ```

Tags:
    - renderer
    - template
    - jinja2

Doc-Types:
    - API_REFERENCE (section: "Renderers", priority: 7)
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from implspine.core.errors import RenderError
from implspine.core.logging import get_logger
from implspine.index import ImplementorIndex
from implspine.models import ImplementorDescriptor

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class ImplementorsRenderer:
    """Render the implementors of one trait as HTML or Markdown.

    Args:
        index: Index holding the registered tables
        template_dir: Directory whose templates override the bundled ones
        root_path: Prefix for relative ``href`` values in markup
        current_crate: Crate documented by the page; its implementors are skipped
    """

    TEMPLATES = {
        "html": "implementors_template.html",
        "markdown": "implementors_template.md",
    }

    EXTENSIONS = {
        "html": ".html",
        "markdown": ".md",
    }

    def __init__(
        self,
        index: ImplementorIndex,
        template_dir: Path | None = None,
        root_path: str = "",
        current_crate: str | None = None,
    ):
        self.index = index
        self.root_path = root_path
        self.current_crate = current_crate

        loaders = [FileSystemLoader(str(TEMPLATE_DIR))]
        if template_dir is not None:
            loaders.insert(0, FileSystemLoader(str(template_dir)))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["markup"] = self._markup_filter

    def rewrite_links(self, markup: str) -> str:
        """Prefix relative ``href`` values with ``root_path``.

        Absolute links (``http...``) and fragment-only links are left alone.
        """
        if not self.root_path:
            return markup
        soup = BeautifulSoup(markup, "html.parser")
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"]
            if not href.startswith(("http", "#", "/")):
                anchor["href"] = self.root_path + href
        return str(soup)

    def _markup_filter(self, descriptor: ImplementorDescriptor) -> Markup:
        if descriptor.markup is None:
            # No generator markup: fall back to the escaped plain signature.
            return Markup.escape(descriptor.signature)
        return Markup(self.rewrite_links(descriptor.markup))

    def context(self, trait: str) -> dict[str, Any]:
        """Template context for ``trait``."""
        exclude = {self.current_crate} if self.current_crate else set()
        crates = self.index.implementors(trait, exclude=exclude)
        return {
            "trait": trait,
            "trait_name": trait.rsplit("::", 1)[-1],
            "crates": crates,
            "implementors": [descriptor for descriptors in crates.values() for descriptor in descriptors],
            "current_crate": self.current_crate,
            "generated_at": datetime.now(),
        }

    def render(self, trait: str, fmt: str = "html") -> str:
        """Render the implementors list of ``trait``.

        Raises:
            RenderError: For an unknown format, a missing template or a failing one
        """
        if fmt not in self.TEMPLATES:
            raise RenderError(f"Unknown format {fmt!r}; expected one of {sorted(self.TEMPLATES)}")

        if trait not in self.index:
            logger.warning("trait_not_indexed", trait=trait)

        context = self.context(trait)
        try:
            template = self.env.get_template(self.TEMPLATES[fmt])
            content = template.render(**context)
        except TemplateError as e:
            raise RenderError(f"Failed to render {fmt} for {trait}: {e}", cause=e).with_context(trait_path=trait)

        logger.debug("implementors_rendered", trait=trait, format=fmt, count=len(context["implementors"]))
        return content

    def write(self, trait: str, output_dir: Path, fmt: str = "html") -> Path:
        """Render ``trait`` into ``output_dir`` and return the written path."""
        content = self.render(trait, fmt=fmt)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / f"{trait.replace('::', '.')}{self.EXTENSIONS[fmt]}"
        output_file.write_text(content, encoding="utf-8")
        logger.info("implementors_written", trait=trait, path=str(output_file), bytes=len(content.encode("utf-8")))
        return output_file


__all__ = ["ImplementorsRenderer", "TEMPLATE_DIR"]
