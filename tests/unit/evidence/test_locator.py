import json

import pytest

from ideagraph.schemas.locator import BoundingBox, Locator
from ideagraph.services.evidence.locator import (
    PageText,
    TextRun,
    locate,
    locate_in_pages,
    match_excerpt,
    run_box,
    run_range,
)


class TestMatchExcerpt:

    def test_strict_match_returns_inclusive_span(self):
        page = "The quick  brown fox"
        start, end = match_excerpt(page, "quick brown")
        assert page[start:end + 1] == "quick  brown"

    def test_falls_back_to_loose_mode(self):
        page = "Models don't need recurrence"
        start, end = match_excerpt(page, "don’t need recurrence")
        assert page[start:end + 1] == "don't need recurrence"

    def test_returns_none_when_absent(self):
        assert match_excerpt("nothing to see here", "missing text") is None

    def test_punctuation_only_excerpt_does_not_match(self):
        assert match_excerpt("some page text", "— —") is None


def test_run_range_counts_tokens():
    page = "alpha beta gamma delta"
    start = page.index("beta")
    end = page.index("gamma") + len("gamma") - 1
    assert run_range(page, start, end, 4) == (1, 2)


def test_run_range_clamps_to_run_count():
    page = "alpha beta"
    assert run_range(page, 0, len(page) - 1, 1) == (0, 0)


def test_run_box_flips_to_top_left_origin():
    run = TextRun(text="word", width=24.0, height=10.0, transform=(12, 0, 0, 12, 100, 700))
    box = run_box(run, viewport_height=792.0)
    assert box == BoundingBox(x=100, y=80, width=24, height=12)


def test_run_box_uses_run_height_without_vertical_scale():
    run = TextRun(text="word", width=24.0, height=10.0, transform=(1, 0, 0, 0, 100, 700))
    assert run_box(run, viewport_height=792.0).height == 10.0


class TestLocate:

    def test_locates_verbatim_excerpt(self, sample_page):
        locator = locate(1, "a model weigh every input token", sample_page.runs, sample_page.viewport_height)

        assert locator is not None
        assert locator.page == 1
        assert locator.text == "a model weigh every input token"
        assert len(locator.boxes) == 6
        # "a" is the fourth word on the line
        assert locator.boxes[0] == BoundingBox(x=216, y=80, width=6, height=12)

    def test_loose_match_selects_matching_runs(self, runs_factory):
        runs = runs_factory("Models don't need recurrence to capture long range dependencies")
        locator = locate(2, "don’t need recurrence", runs, 792.0)

        assert locator is not None
        assert locator.page == 2
        assert locator.text == "don’t need recurrence"
        assert [box.x for box in locator.boxes] == [run.transform[4] for run in runs[1:4]]

    def test_returns_none_when_excerpt_missing(self, sample_page):
        assert locate(1, "completely unrelated sentence", sample_page.runs, 792.0) is None

    def test_returns_none_without_runs(self):
        assert locate(1, "anything", [], 792.0) is None

    def test_zero_area_runs_are_skipped(self):
        runs = [
            TextRun(text="hidden", width=0.0, height=12.0, transform=(12, 0, 0, 12, 72, 700)),
            TextRun(text="layer", width=0.0, height=12.0, transform=(12, 0, 0, 12, 90, 700)),
        ]
        assert locate(1, "hidden layer", runs, 792.0) is None


class TestLocateInPages:

    @staticmethod
    def _pages(runs_factory, texts):
        return [
            PageText(page_number=i, runs=runs_factory(text), viewport_height=792.0)
            for i, text in enumerate(texts, start=1)
        ]

    def test_finds_excerpt_on_third_page(self, runs_factory):
        pages = self._pages(runs_factory, [
            "Introduction to the problem space",
            "Related work on sequence models",
            "Self attention replaces recurrence with parallel computation",
        ])
        found = locate_in_pages(["attention replaces recurrence"], pages)
        assert found["attention replaces recurrence"].page == 3

    def test_hyphenated_sentence_on_third_page_has_positive_boxes(self, runs_factory):
        pages = self._pages(runs_factory, [
            "Abstract and motivation",
            "Background on recurrent networks",
            "Self-attention enables parallel processing. This is the key result.",
        ])
        excerpt = "Self-attention enables parallel processing."

        locator = locate_in_pages([excerpt], pages)[excerpt]

        assert locator.page == 3
        assert len(locator.boxes) == 4
        assert all(box.width > 0 and box.height > 0 for box in locator.boxes)

    def test_first_page_wins(self, runs_factory):
        pages = self._pages(runs_factory, ["shared phrase here", "shared phrase again"])
        found = locate_in_pages(["shared phrase"], pages)
        assert found["shared phrase"].page == 1

    def test_stops_once_every_excerpt_is_found(self, runs_factory):
        pages = self._pages(runs_factory, ["first idea text", "second idea text", "third page"])
        consumed = []

        def lazy_pages():
            for page in pages:
                consumed.append(page.page_number)
                yield page

        found = locate_in_pages(["first idea", "second idea", "first idea"], lazy_pages())
        assert set(found) == {"first idea", "second idea"}
        assert consumed == [1, 2]

    def test_unlocated_excerpts_are_absent(self, runs_factory):
        pages = self._pages(runs_factory, ["only this text"])
        assert locate_in_pages(["not present"], pages) == {}

    def test_no_excerpts(self, runs_factory):
        assert locate_in_pages([], self._pages(runs_factory, ["text"])) == {}


class TestLocatorSerialization:

    def test_to_json_is_compact_with_integral_numbers(self):
        locator = Locator(
            page=3,
            text="excerpt",
            boxes=[BoundingBox(x=216.0, y=80.5, width=6.0, height=12.0)],
        )
        assert locator.to_json() == (
            '{"page":3,"text":"excerpt","boxes":[{"x":216,"y":80.5,"width":6,"height":12}]}'
        )

    def test_from_json_round_trip(self):
        raw = json.dumps({"page": 1, "text": "t", "boxes": [{"x": 1, "y": 2, "width": 3, "height": 4}]})
        locator = Locator.from_json(raw)
        assert locator.page == 1
        assert locator.boxes[0].width == 3

    @pytest.mark.parametrize("raw", [None, "", "not json", '{"page": 1, "text": "t", "boxes": []}'])
    def test_from_json_rejects_bad_values(self, raw):
        assert Locator.from_json(raw) is None
