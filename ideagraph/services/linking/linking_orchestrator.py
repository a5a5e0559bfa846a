"""Linking orchestration: embed, deduplicate, rank and classify idea pairs.

Setup (``run``) is one step and ends by persisting every candidate pair
with its batch index. Each batch is then its own step
(``process_batch``), receiving the ``LinkingBatchState`` checkpoint from
the previous one; the persisted pairs plus that checkpoint are all a
batch needs, so the scheduler may suspend or restart between batches.
Edges and embeddings written by earlier steps are kept if a later step
fails.
"""

from typing import Dict, List, Optional
from uuid import UUID

import numpy as np
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.core.config import settings
from ideagraph.database.models import CandidatePair, IdeaNode
from ideagraph.repositories.candidate_pair_repository import CandidatePairRepository
from ideagraph.repositories.edge_repository import EdgeRepository
from ideagraph.repositories.evidence_repository import EvidenceRefRepository
from ideagraph.repositories.idea_node_repository import IdeaNodeRepository
from ideagraph.schemas.jobs import JobStatus
from ideagraph.schemas.linking import BatchOutcome, ClassifiedEdge, LinkingBatchState
from ideagraph.services.jobs.job_service import JobService, JobTracker
from ideagraph.services.linking.embedding_service import EmbeddingService
from ideagraph.services.linking.relationship_classifier import PairDescription, RelationshipClassifier
from ideagraph.services.linking.similarity import (
    batch_count,
    candidate_pairs,
    greedy_dedup,
    similarity_matrix,
)
from ideagraph.services.progress_messages import format_job_message
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LinkingOrchestrator:
    """Rebuilds a project's edges from its idea nodes."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        job_service: Optional[JobService] = None,
        node_repository: Optional[IdeaNodeRepository] = None,
        edge_repository: Optional[EdgeRepository] = None,
        evidence_repository: Optional[EvidenceRefRepository] = None,
        pair_repository: Optional[CandidatePairRepository] = None,
        embedding_service: Optional[EmbeddingService] = None,
        classifier: Optional[RelationshipClassifier] = None,
    ):
        self.job_service = job_service or JobService(session)
        self.node_repository = node_repository or IdeaNodeRepository(session)
        self.edge_repository = edge_repository or EdgeRepository(session)
        self.evidence_repository = evidence_repository or EvidenceRefRepository(session)
        self.pair_repository = pair_repository or CandidatePairRepository(session)
        self.embedding_service = embedding_service or EmbeddingService()
        self._classifier = classifier

        self.dedup_threshold = settings.pipeline.dedup_threshold
        self.candidate_threshold = settings.pipeline.candidate_threshold
        self.batch_size = settings.pipeline.linking_batch_size

    @property
    def classifier(self) -> RelationshipClassifier:
        if self._classifier is None:
            self._classifier = RelationshipClassifier()
        return self._classifier

    async def run(self, job_id: UUID, project_id: UUID) -> BatchOutcome:
        """Setup phase. Returns the first batch checkpoint, or a terminal outcome."""
        tracker = self.job_service.tracker(job_id)
        try:
            return await self._setup(tracker, job_id, project_id)
        except Exception as e:
            LOGGER.error(
                f"Linking setup failed: {e}",
                exc_info=True,
                extra={"job_id": str(job_id), "project_id": str(project_id)}
            )
            await tracker.fail(e)
            await self._release_pairs(job_id)
            return BatchOutcome(status=JobStatus.FAILED.value)

    async def _setup(self, tracker: JobTracker, job_id: UUID, project_id: UUID) -> BatchOutcome:
        await tracker.start(
            current=0, total=0, links_created=0,
            message=format_job_message("linking", "clearing"),
        )

        cleared = await self.edge_repository.clear_for_project(project_id)
        await tracker.update(message=format_job_message(
            "linking",
            "loading" if cleared > 0 else "loading_empty",
            {"removed_count": cleared},
        ))

        nodes = await self.node_repository.list_by_project(project_id)
        if len(nodes) < 2:
            await tracker.update(message=format_job_message(
                "linking", "too_few", {"node_count": len(nodes)}
            ))
            await tracker.complete()
            return BatchOutcome(status=JobStatus.COMPLETED.value)

        await tracker.update(message=format_job_message(
            "linking", "embedding", {"node_count": len(nodes)}
        ))
        vectors = await self.embedding_service.embed_nodes(nodes)
        await self.node_repository.save_embeddings(
            {node.id: vector for node, vector in zip(nodes, vectors)}
        )

        await tracker.update(message=format_job_message(
            "linking", "comparing", {"node_count": len(nodes)}
        ))

        matrix = similarity_matrix(vectors)
        merged = greedy_dedup(matrix, self.dedup_threshold)
        for index in merged:
            await self.node_repository.delete_node(nodes[index].id)

        merged_set = set(merged)
        keep = [i for i in range(len(nodes)) if i not in merged_set]
        survivors = [nodes[i] for i in keep]
        if merged:
            LOGGER.info(
                f"Merged {len(merged)} duplicate ideas",
                extra={"job_id": str(job_id), "remaining": len(survivors)}
            )
            await tracker.update(message=format_job_message(
                "linking", "deduplicated",
                {"duplicate_count": len(merged), "unique_count": len(survivors)},
            ))

        ranked = candidate_pairs(
            [node.id for node in survivors],
            matrix[np.ix_(keep, keep)],
            self.candidate_threshold,
            self.batch_size,
        )
        if not ranked:
            await tracker.update(message=format_job_message(
                "linking", "no_candidates", {"node_count": len(survivors)}
            ))
            await tracker.complete()
            return BatchOutcome(status=JobStatus.COMPLETED.value)

        total_batches = batch_count(len(ranked), self.batch_size)
        await self.pair_repository.save_pairs(job_id, [
            {
                "source_node_id": pair.source_id,
                "target_node_id": pair.target_id,
                "similarity": pair.similarity,
                "batch_index": pair.batch_index,
            }
            for pair in ranked
        ])

        await tracker.update(
            current=0,
            total=total_batches,
            message=format_job_message(
                "linking", "candidates",
                {"pair_count": len(ranked), "batch_count": total_batches},
            ),
        )

        return BatchOutcome(
            status=JobStatus.RUNNING.value,
            next_state=LinkingBatchState(
                job_id=str(job_id),
                project_id=str(project_id),
                batch_index=0,
                total_batches=total_batches,
                links_created=0,
                node_count=len(survivors),
                duplicates_removed=len(merged),
            ),
        )

    async def process_batch(self, state: LinkingBatchState) -> BatchOutcome:
        """Classify one batch and persist its edges."""
        job_id = UUID(state.job_id)
        tracker = self.job_service.tracker(job_id)
        try:
            return await self._process_batch(tracker, state)
        except Exception as e:
            LOGGER.error(
                f"Linking batch {state.batch_index} failed: {e}",
                exc_info=True,
                extra={"job_id": state.job_id, "batch_index": state.batch_index}
            )
            await tracker.fail(e)
            await self._release_pairs(job_id)
            return BatchOutcome(status=JobStatus.FAILED.value, links_created=state.links_created)

    async def _release_pairs(self, job_id: UUID) -> None:
        """Drop the job's candidate pairs once it can no longer resume."""
        try:
            await self.pair_repository.clear_for_job(job_id)
        except Exception as e:
            LOGGER.warning(
                f"Failed to clear candidate pairs: {e}",
                extra={"job_id": str(job_id)}
            )

    async def _process_batch(self, tracker: JobTracker, state: LinkingBatchState) -> BatchOutcome:
        job_id = UUID(state.job_id)
        project_id = UUID(state.project_id)

        await tracker.update(
            current=state.batch_index,
            message=format_job_message(
                "linking", "classifying",
                {"batch_number": state.batch_index + 1, "batch_count": state.total_batches},
            ),
        )

        pairs = await self.pair_repository.get_batch(job_id, state.batch_index)
        if not pairs:
            return await self._advance(tracker, state, state.links_created)

        nodes = {
            str(node.id): node
            for node in await self.node_repository.list_by_project(project_id)
        }
        descriptions = self._describe(pairs, nodes)
        if not descriptions:
            return await self._advance(tracker, state, state.links_created)

        edges = await self.classifier.classify(descriptions)
        created = 0
        for edge in edges:
            await self._save_edge(project_id, edge)
            created += 1

        links_created = state.links_created + created
        step = "all_done" if state.is_last else "batch_done"
        await tracker.update(
            current=state.batch_index + 1,
            links_created=links_created,
            message=format_job_message(
                "linking", step,
                {"batch_number": state.batch_index + 1, "links_created": links_created},
            ),
        )
        return await self._advance(tracker, state, links_created)

    @staticmethod
    def _describe(
        pairs: List[CandidatePair], nodes: Dict[str, IdeaNode]
    ) -> List[PairDescription]:
        descriptions = []
        for pair in pairs:
            source = nodes.get(str(pair.source_node_id))
            target = nodes.get(str(pair.target_node_id))
            # Either side may have been removed since setup
            if source is None or target is None:
                continue
            descriptions.append(PairDescription(
                source_id=str(source.id),
                source_label=source.label,
                source_summary=source.summary,
                target_id=str(target.id),
                target_label=target.label,
                target_summary=target.summary,
                similarity=pair.similarity,
            ))
        return descriptions

    async def _save_edge(self, project_id: UUID, classified: ClassifiedEdge) -> None:
        source_id = UUID(classified.source_id)
        edge = await self.edge_repository.create_edge(
            project_id=project_id,
            source_node_id=source_id,
            target_node_id=UUID(classified.target_id),
            type=classified.type.value,
            confidence=classified.confidence,
            reasoning=classified.reasoning or None,
        )

        refs = await self.evidence_repository.list_by_node(source_id)
        if not refs:
            return
        first = refs[0]
        excerpt = classified.evidence.strip()
        if excerpt:
            await self.evidence_repository.create_for_edge(edge.id, first.document_id, excerpt)
        else:
            # Falls back to the source node's own excerpt, whose locator still applies
            await self.evidence_repository.create_for_edge(
                edge.id, first.document_id, first.excerpt, first.locator
            )

    async def _advance(
        self, tracker: JobTracker, state: LinkingBatchState, links_created: int
    ) -> BatchOutcome:
        if state.is_last:
            return await self._finish(tracker, state, links_created)
        return BatchOutcome(
            status=JobStatus.RUNNING.value,
            links_created=links_created,
            next_state=state.advance(links_created),
        )

    async def _finish(
        self, tracker: JobTracker, state: LinkingBatchState, links_created: int
    ) -> BatchOutcome:
        await self.pair_repository.clear_for_job(UUID(state.job_id))
        step = "completed" if state.duplicates_removed > 0 else "completed_clean"
        await tracker.complete(
            links_created=links_created,
            message=format_job_message(
                "linking", step,
                {
                    "links_created": links_created,
                    "node_count": state.node_count,
                    "duplicate_count": state.duplicates_removed,
                },
            ),
        )
        LOGGER.info(
            "Linking job completed",
            extra={"job_id": state.job_id, "links_created": links_created}
        )
        return BatchOutcome(status=JobStatus.COMPLETED.value, links_created=links_created)

    async def run_to_completion(self, job_id: UUID, project_id: UUID) -> BatchOutcome:
        """Execute setup and every batch in-process."""
        outcome = await self.run(job_id, project_id)
        while outcome.next_state is not None:
            outcome = await self.process_batch(outcome.next_state)
        return outcome
