"""System prompts for the generative model calls."""

from ideagraph.schemas.linking import RelationshipType

VALID_RELATIONSHIP_TYPES = [t.value for t in RelationshipType]

IDEA_EXTRACTION_PROMPT = """You are an expert knowledge analyst. Read the attached PDF and extract its key ideas.

Start with a single-paragraph summary of the whole document (documentSummary).

Then list the ideas. For each idea return:
- label: a short title of 5-10 words
- summary: one or two sentences explaining the idea
- tags: 2-5 topic tags
- excerpts: 1-2 verbatim quotes from the document that back the idea. Copy the text exactly as it appears, 40-500 characters each
- confidence: a number from 0 to 1 for how well the excerpts support the idea

Return at most {max_ideas} ideas. Prefer the most important and clearly distinct concepts.
Respond with JSON only."""

IDEA_EXTRACTION_USER_PROMPT = "Extract the key ideas from this document."

RELATIONSHIP_CLASSIFICATION_PROMPT = """You are an expert knowledge analyst. You are given pairs of ideas extracted from documents. Classify the relationship within each pair.

For every pair with a meaningful relationship return:
- sourceId / targetId: the exact IDs given for the pair
- type: one of {relationship_types}
- confidence: a number from 0 to 1
- evidence: a short justification of at most one sentence
- reasoning: an explicit rationale of 1-3 sentences

Leave out pairs whose relationship you would rate below 0.5 confidence.

Relationship types:
- supports: one idea backs up or provides evidence for the other
- contradicts: the ideas disagree or are in tension
- extends: one idea builds on or elaborates the other
- similar: the ideas cover the same ground from different angles
- example_of: one idea is a concrete instance of the other
- depends_on: one idea requires or presupposes the other

Respond with JSON only: {{"edges": [...]}}"""

RELATIONSHIP_CLASSIFICATION_USER_PROMPT = "Classify the relationships between these idea pairs:\n\n{pairs}"
