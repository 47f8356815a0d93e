"""Processing phases reported over the document SSE stream."""

VALIDATING = "validating"
PARSING = "parsing"
EXTRACTING = "extracting"
EMBEDDINGS = "embeddings"
SYNTHESIS = "synthesis"
