"""Tests for the static HTML view."""

from ytdigest.render import markdown_to_html, render_digest_html

from conftest import VIDEO_ID


class TestRenderDigestHtml:
    def test_contains_digest_sections(self, document):
        html = render_digest_html(document)

        assert "<title>Big Buck Bunny 60fps 4K - transcript digest</title>" in html
        assert "A rabbit gets even." in html
        assert "A gentle rabbit takes revenge on three bullies." in html
        for item in ("Animation", "Blender", "open movie", "Revenge comedy", "Hello there."):
            assert item in html

    def test_chapter_links(self, document):
        html = render_digest_html(document)

        assert f'href="https://www.youtube.com/watch?v={VIDEO_ID}&amp;t=30"' in html
        assert "01:15 - Second minute" in html

    def test_escapes_generated_text(self, document):
        digest = document.digest.model_copy(
            update={"sentence_summary": "<script>alert(1)</script>"}
        )
        doc = document.model_copy(update={"digest": digest})

        html = render_digest_html(doc)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_missing_metadata_falls_back_to_id(self, document):
        meta = document.metadata.model_copy(update={"title": None, "duration_seconds": None})
        doc = document.model_copy(update={"metadata": meta})

        html = render_digest_html(doc)

        assert f"<h1>{VIDEO_ID}</h1>" in html
        assert "635s" not in html

    def test_page_summary_rendered_as_markdown(self, document):
        html = render_digest_html(document)

        assert "<h1>Big Buck Bunny</h1>" in html
        assert "<li>A giant rabbit</li>" in html
        assert "<li>Three rodents</li>" in html
        assert "# Big Buck Bunny" not in html

    def test_page_summary_raw_html_is_escaped(self, document):
        digest = document.digest.model_copy(
            update={"page_summary": "# Notes\n<img src=x onerror=alert(1)>"}
        )
        doc = document.model_copy(update={"digest": digest})

        html = render_digest_html(doc)

        assert "<img src=x" not in html
        assert "&lt;img src=x onerror=alert(1)&gt;" in html


class TestMarkdownToHtml:
    def test_lists_and_emphasis(self):
        html = markdown_to_html("- **bold** item\n- plain")
        assert "<li><strong>bold</strong> item</li>" in html
        assert "<li>plain</li>" in html
