"""Human-readable job progress messages."""

from typing import Dict, Optional

ELLIPSIS = "…"


def format_job_message(job_type: str, step: str, metadata: Optional[Dict] = None) -> str:
    """Format the progress line for one step of a job.

    Unknown keys in a template are left as ``{key}`` rather than raising.
    """
    metadata = dict(metadata or {})
    for key in list(metadata):
        value = metadata[key]
        if isinstance(value, int) and not isinstance(value, bool):
            metadata.setdefault(f"{key}_plural", "" if value == 1 else "s")

    templates = {
        "extraction": {
            "preparing": "Preparing to extract ideas from {document_count} document{document_count_plural}" + ELLIPSIS,
            "reading": "Reading \"{filename}\"" + ELLIPSIS + " ({index} of {total})",
            "saving": "Saving {idea_count} idea{idea_count_plural} from \"{filename}\"" + ELLIPSIS,
            "document_done": "Finished \"{filename}\" — moving to next document" + ELLIPSIS,
            "all_done": "Finished extracting from all documents",
            "completed": "Done — extracted {idea_count} idea{idea_count_plural} from {document_count} document{document_count_plural}",
        },
        "linking": {
            "clearing": "Clearing previous links" + ELLIPSIS,
            "loading": "Removed {removed_count} old link{removed_count_plural}. Loading ideas" + ELLIPSIS,
            "loading_empty": "Loading ideas" + ELLIPSIS,
            "too_few": "Only {node_count} idea{node_count_plural} found — need at least 2 to link",
            "embedding": "Generating embeddings for {node_count} ideas" + ELLIPSIS,
            "comparing": "Embeddings ready. Comparing {node_count} ideas for similarity" + ELLIPSIS,
            "deduplicated": "Removed {duplicate_count} duplicate idea{duplicate_count_plural}. {unique_count} unique ideas remaining.",
            "no_candidates": "No related pairs found among {node_count} ideas",
            "candidates": "Found {pair_count} candidate pair{pair_count_plural}. Classifying in {batch_count} batch{batch_count_plural_es}" + ELLIPSIS,
            "classifying": "Classifying batch {batch_number} of {batch_count}" + ELLIPSIS,
            "batch_done": "Batch {batch_number} done — {links_created} link{links_created_plural} created so far" + ELLIPSIS,
            "all_done": "All batches complete",
            "completed_clean": "Done — created {links_created} link{links_created_plural} between {node_count} ideas",
            "completed": "Done — created {links_created} link{links_created_plural} between {node_count} ideas (removed {duplicate_count} duplicate{duplicate_count_plural})",
        },
        "locator_backfill": {
            "started": "Locating evidence in {document_count} document{document_count_plural}" + ELLIPSIS,
            "document": "Locating excerpts in \"{filename}\"" + ELLIPSIS,
            "completed": "Done — updated {updated_count} locator{updated_count_plural}",
        },
    }

    if "batch_count" in metadata:
        metadata.setdefault("batch_count_plural_es", "" if metadata["batch_count"] == 1 else "es")

    template = templates.get(job_type, {}).get(step)
    if template is None:
        return f"{job_type.replace('_', ' ').capitalize()} {step}"

    class SafeFormatter(dict):
        def __missing__(self, key):
            return "{" + key + "}"

    return template.format_map(SafeFormatter(**metadata))
