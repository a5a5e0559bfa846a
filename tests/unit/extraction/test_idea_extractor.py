from unittest.mock import AsyncMock

import pytest

from ideagraph.core.exceptions import ExtractionError
from ideagraph.services.extraction.idea_extractor import IdeaExtractor


def _idea(n):
    return {
        "label": f"Idea number {n}",
        "summary": "A short explanation.",
        "tags": ["ml"],
        "excerpts": ["An excerpt long enough to survive the forty character floor."],
        "confidence": 0.8,
    }


@pytest.fixture
def client():
    client = AsyncMock()
    client.generate_json.return_value = {
        "documentSummary": "About attention.",
        "ideas": [_idea(1), _idea(2)],
    }
    return client


@pytest.fixture
def storage():
    storage = AsyncMock()
    storage.fetch.return_value = b"%PDF-1.4 body"
    return storage


@pytest.fixture
def document(project_id, document_factory):
    return document_factory(project_id, filename="attention.pdf", source_handle="p/attention.pdf")


@pytest.mark.asyncio
async def test_extract_returns_validated_result(client, storage, document):
    extractor = IdeaExtractor(client=client, storage=storage, max_ideas=30)

    extraction = await extractor.extract(document)

    assert extraction.pdf_bytes == b"%PDF-1.4 body"
    assert extraction.result.document_summary == "About attention."
    assert [idea.label for idea in extraction.result.ideas] == ["Idea number 1", "Idea number 2"]
    storage.fetch.assert_awaited_once_with("p/attention.pdf")


@pytest.mark.asyncio
async def test_extract_sends_pdf_and_idea_limit(client, storage, document):
    extractor = IdeaExtractor(client=client, storage=storage, max_ideas=12)

    await extractor.extract(document)

    kwargs = client.generate_json.await_args.kwargs
    assert "at most 12 ideas" in kwargs["system_instruction"]
    pdf = kwargs["parts"][0]
    assert pdf["type"] == "file"
    assert pdf["file"]["filename"] == "attention.pdf"
    assert pdf["file"]["file_data"].startswith("data:application/pdf;base64,")
    assert kwargs["json_schema"]["required"] == ["documentSummary", "ideas"]


@pytest.mark.asyncio
async def test_extra_ideas_are_truncated(client, storage, document):
    client.generate_json.return_value = {
        "documentSummary": "Long document.",
        "ideas": [_idea(n) for n in range(35)],
    }
    extractor = IdeaExtractor(client=client, storage=storage, max_ideas=30)

    extraction = await extractor.extract(document)

    assert len(extraction.result.ideas) == 30
    assert extraction.result.ideas[-1].label == "Idea number 29"


@pytest.mark.asyncio
async def test_invalid_reply_raises_extraction_error(client, storage, document):
    client.generate_json.return_value = {"ideas": [{"label": "No summary"}]}
    extractor = IdeaExtractor(client=client, storage=storage)

    with pytest.raises(ExtractionError):
        await extractor.extract(document)
