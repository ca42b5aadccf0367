from .job import FetchedArtifact, JobHandle, JobStatus, OutputArtifact, ResultBundle
from .stem_splitter import StemSplitRequest

__all__ = [
    "FetchedArtifact",
    "JobHandle",
    "JobStatus",
    "OutputArtifact",
    "ResultBundle",
    "StemSplitRequest",
]
