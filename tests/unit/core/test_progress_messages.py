import pytest

from ideagraph.services.progress_messages import format_job_message


@pytest.mark.parametrize(
    "job_type,step,metadata,expected",
    [
        ("extraction", "preparing", {"document_count": 1}, "Preparing to extract ideas from 1 document…"),
        ("extraction", "preparing", {"document_count": 3}, "Preparing to extract ideas from 3 documents…"),
        ("extraction", "reading", {"filename": "a.pdf", "index": 2, "total": 5}, "Reading \"a.pdf\"… (2 of 5)"),
        ("linking", "candidates", {"pair_count": 1, "batch_count": 1},
         "Found 1 candidate pair. Classifying in 1 batch…"),
        ("linking", "candidates", {"pair_count": 45, "batch_count": 3},
         "Found 45 candidate pairs. Classifying in 3 batches…"),
        ("linking", "completed_clean", {"links_created": 0, "node_count": 4},
         "Done — created 0 links between 4 ideas"),
        ("locator_backfill", "completed", {"updated_count": 1}, "Done — updated 1 locator"),
    ],
)
def test_messages(job_type, step, metadata, expected):
    assert format_job_message(job_type, step, metadata) == expected


def test_unknown_step_falls_back():
    assert format_job_message("locator_backfill", "paused") == "Locator backfill paused"


def test_missing_keys_are_left_in_place():
    assert format_job_message("extraction", "saving", {"idea_count": 2}) == "Saving 2 ideas from \"{filename}\"…"
