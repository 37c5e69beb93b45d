"""Static HTML view of a digest document."""
from jinja2 import Environment, PackageLoader, select_autoescape
from markdown_it import MarkdownIt
from markupsafe import Markup

from ytdigest.models.schemas import DigestDocument

# raw HTML in generated text is escaped, not passed through
_markdown = MarkdownIt("commonmark", {"html": False})


def markdown_to_html(text: str) -> Markup:
    return Markup(_markdown.render(text))


_env = Environment(
    loader=PackageLoader("ytdigest", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["markdown"] = markdown_to_html


def render_digest_html(document: DigestDocument, template_name: str = "digest.html") -> str:
    """Render a digest document with the named package template."""
    template = _env.get_template(template_name)
    return template.render(doc=document, meta=document.metadata, digest=document.digest)
