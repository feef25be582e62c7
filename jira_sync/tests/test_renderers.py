import unittest
from pathlib import Path

from jira_sync.models import ParsedDocument
from jira_sync.renderers import AdfRenderer, PlainTextRenderer, build_adf_blocks, get_renderer


def _doc(content: str, summary: str = "Summary") -> ParsedDocument:
    return ParsedDocument(file_path=Path("/r/tasks/a.md"), summary=summary, content=content)


class AdfRendererTests(unittest.TestCase):
    def test_block_order(self) -> None:
        blocks = build_adf_blocks("Line1\n\n- a\n- b\n\n## Heading\nLine2".split("\n"))

        self.assertEqual([b["type"] for b in blocks], ["paragraph", "bulletList", "heading", "paragraph"])
        self.assertEqual(blocks[0]["content"], [{"type": "text", "text": "Line1"}])
        items = [item["content"][0]["content"][0]["text"] for item in blocks[1]["content"]]
        self.assertEqual(items, ["a", "b"])
        self.assertEqual(blocks[2]["attrs"], {"level": 2})
        self.assertEqual(blocks[2]["content"][0]["text"], "Heading")
        self.assertEqual(blocks[3]["content"][0]["text"], "Line2")

    def test_paragraph_lines_join_with_space(self) -> None:
        blocks = build_adf_blocks(["first line  ", "  second line"])
        self.assertEqual(blocks, [{"type": "paragraph", "content": [{"type": "text", "text": "first line second line"}]}])

    def test_bullet_flushes_open_paragraph(self) -> None:
        blocks = build_adf_blocks(["intro", "* one", "+ two"])
        self.assertEqual([b["type"] for b in blocks], ["paragraph", "bulletList"])
        self.assertEqual(len(blocks[1]["content"]), 2)

    def test_heading_closes_list(self) -> None:
        blocks = build_adf_blocks(["- one", "### Title", "- two"])
        self.assertEqual([b["type"] for b in blocks], ["bulletList", "heading", "bulletList"])
        self.assertEqual(blocks[1]["attrs"]["level"], 3)

    def test_jira_line_is_not_rendered(self) -> None:
        doc = _doc("# EPIC: Launch\nJIRA: https://h/browse/P-1\n\nBody")
        rendered = AdfRenderer().render(doc)

        self.assertEqual(rendered["type"], "doc")
        self.assertEqual(rendered["version"], 1)
        self.assertNotIn("browse/P-1", str(rendered))

    def test_empty_body_falls_back_to_summary(self) -> None:
        rendered = AdfRenderer().render(_doc("JIRA: https://h/browse/P-1\n\n", summary="Launch"))
        self.assertEqual(rendered["content"], [{"type": "paragraph", "content": [{"type": "text", "text": "Launch"}]}])


class PlainTextRendererTests(unittest.TestCase):
    def test_strips_jira_line(self) -> None:
        rendered = PlainTextRenderer().render(_doc("# Task: X\nJIRA: https://h/browse/P-1\nBody text\n"))
        self.assertEqual(rendered, "# Task: X\nBody text")

    def test_empty_body_falls_back_to_summary(self) -> None:
        self.assertEqual(PlainTextRenderer().render(_doc("", summary="Only summary")), "Only summary")

    def test_get_renderer(self) -> None:
        self.assertIsInstance(get_renderer("text"), PlainTextRenderer)
        self.assertIsInstance(get_renderer("adf"), AdfRenderer)


if __name__ == "__main__":
    unittest.main()
