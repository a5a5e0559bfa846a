from typing import List, Optional, Sequence

from ideagraph.core.exceptions import LinkingError
from ideagraph.core.llm_client import create_embedding_client
from ideagraph.database.models import IdeaNode
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


def node_text(node: IdeaNode) -> str:
    """Text embedded for a node."""
    return f"{node.label}: {node.summary}"


class EmbeddingService:
    """Embeds idea nodes in a single batched call."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = create_embedding_client()
        return self._client

    async def embed_nodes(self, nodes: Sequence[IdeaNode]) -> List[List[float]]:
        """One vector per node, in node order."""
        texts = [node_text(node) for node in nodes]
        vectors = await self.client.embed(texts)
        if len(vectors) != len(nodes):
            raise LinkingError(
                f"Embedding count mismatch: expected {len(nodes)}, got {len(vectors)}"
            )
        LOGGER.info(
            f"Embedded {len(nodes)} nodes",
            extra={"dimensions": len(vectors[0]) if vectors else 0}
        )
        return vectors
